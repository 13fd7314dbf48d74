"""
Unit tests for name templates: parsing and rendering.
"""

from datetime import datetime

import pytest

from file_sorter.organization_logic.name_template import (
    CustomText,
    DateAccessed,
    DateCreated,
    DateModified,
    DirectoryName,
    Literal,
    NO_EXTENSION_DIRECTORY,
    NameTemplate,
    OriginalExtension,
    OriginalStem,
    parse_target,
    parse_template,
    render,
    render_target,
)
from file_sorter.organization_logic.rules import Rule
from file_sorter.utils.error_handler import TemplateError


@pytest.fixture
def documents_rule():
    return Rule(name="PDFs", predicates=(), target_directory="Documents")


class TestRender:
    """Test filename rendering."""

    def test_date_dir_stem(self, make_file, documents_rule):
        template = NameTemplate(
            components=(
                DateCreated("YYYYMMDD"),
                Literal("_"),
                DirectoryName(),
                Literal("_"),
                OriginalStem(),
            )
        )
        file = make_file("/inbox/report.pdf", created=datetime(2025, 8, 31))

        assert render(template, file, documents_rule) == "20250831_Documents_report.pdf"

    def test_original_name_template(self, make_file):
        assert render(NameTemplate.original_name(), make_file("/inbox/notes.txt")) == "notes.txt"

    def test_extension_case_is_preserved(self, make_file):
        file = make_file("/inbox/IMG_0001.JPG")
        assert render(NameTemplate.original_name(), file) == "IMG_0001.JPG"

    def test_extension_can_be_omitted(self, make_file):
        template = NameTemplate(components=(OriginalStem(),), include_extension=False)
        assert render(template, make_file("/inbox/notes.txt")) == "notes"

    def test_file_without_extension(self, make_file):
        assert render(NameTemplate.original_name(), make_file("/inbox/README")) == "README"

    def test_explicit_extension_is_not_duplicated(self, make_file):
        template = NameTemplate(components=(OriginalStem(), OriginalExtension()))
        assert render(template, make_file("/inbox/a.pdf")) == "a.pdf"

    def test_extension_after_literal_dot(self, make_file):
        template = NameTemplate(components=(OriginalStem(), Literal("."), OriginalExtension()))
        assert render(template, make_file("/inbox/a.pdf")) == "a.pdf"

    def test_trailing_literal_dot_is_not_doubled(self, make_file):
        assert render(parse_template("{stem}."), make_file("/inbox/report.pdf")) == "report.pdf"

    def test_each_date_component(self, make_file):
        file = make_file(
            "/inbox/a.txt",
            created=datetime(2021, 1, 2),
            modified=datetime(2022, 3, 4, 5, 6, 7),
            accessed=datetime(2023, 12, 25),
        )
        template = NameTemplate(
            components=(
                DateCreated("YYYY"),
                Literal("-"),
                DateModified("YYYY-MM-DD_HHmmss"),
                Literal("-"),
                DateAccessed("%d.%m.%y"),
            ),
            include_extension=False,
        )
        assert render(template, file) == "2021-2022-03-04_050607-25.12.23"

    def test_custom_text(self, make_file):
        template = NameTemplate(components=(CustomText("invoice"), Literal("_"), OriginalStem()))
        assert render(template, make_file("/inbox/42.pdf")) == "invoice_42.pdf"

    def test_directory_name_uses_last_target_part(self, make_file):
        rule = Rule(name="r", predicates=(), target_directory="Finance/Invoices")
        template = NameTemplate(components=(DirectoryName(), Literal("-"), OriginalStem()))
        assert render(template, make_file("/inbox/x.pdf"), rule) == "Invoices-x.pdf"

    def test_directory_name_of_rendered_target(self, make_file):
        rule = Rule(name="r", predicates=(), target_directory="Media/{ext}")
        template = NameTemplate(components=(DirectoryName(), Literal("-"), OriginalStem()))
        assert render(template, make_file("/inbox/x.PNG"), rule) == "png-x.PNG"

    def test_path_separators_never_leak_into_names(self, make_file):
        template = NameTemplate(components=(CustomText("a/b"), OriginalStem()))
        assert render(template, make_file("/inbox/x.pdf")) == "a_bx.pdf"

    def test_empty_result_falls_back_to_stem(self, make_file):
        template = NameTemplate(components=(DirectoryName(),))
        assert render(template, make_file("/inbox/x.pdf"), rule=None) == "x.pdf"

    def test_render_is_pure(self, make_file, documents_rule):
        template = parse_template("{modified:YYYYMMDD}_{stem}")
        file = make_file("/inbox/a.pdf")
        assert render(template, file, documents_rule) == render(template, file, documents_rule)


class TestTransforms:
    """Test name transforms applied to variable components."""

    def test_lowercase_includes_extension(self, make_file):
        template = NameTemplate(components=(OriginalStem(),), transforms=("lowercase",))
        assert render(template, make_file("/inbox/My Photo.JPG")) == "my photo.jpg"

    def test_underscores(self, make_file):
        template = NameTemplate(components=(OriginalStem(),), transforms=("underscores",))
        assert render(template, make_file("/inbox/My Photo.JPG")) == "My_Photo.JPG"

    def test_ascii(self, make_file):
        template = NameTemplate(components=(OriginalStem(),), transforms=("ascii",))
        assert render(template, make_file("/inbox/Mäkelä öljy.txt")) == "Makela oljy.txt"

    def test_literals_are_not_transformed(self, make_file):
        template = NameTemplate(
            components=(Literal("A B "), OriginalStem()),
            transforms=("lowercase", "underscores"),
        )
        assert render(template, make_file("/inbox/C D.txt")) == "A B c_d.txt"


class TestParseTemplate:
    """Test the text form of templates."""

    def test_parse_placeholders(self):
        template = parse_template("{created:YYYYMMDD}_{dir}_{stem}")
        assert template.components == (
            DateCreated("YYYYMMDD"),
            Literal("_"),
            DirectoryName(),
            Literal("_"),
            OriginalStem(),
        )

    def test_default_date_format(self):
        assert parse_template("{modified}").components == (DateModified("YYYYMMDD"),)

    def test_custom_text(self):
        template = parse_template("{custom}-{stem}", custom_text="scan")
        assert template.components[0] == CustomText("scan")

    def test_custom_without_text_fails(self):
        with pytest.raises(TemplateError):
            parse_template("{custom}")

    def test_escaped_braces(self):
        template = parse_template("{{x}}{stem}")
        assert template.components == (Literal("{x}"), OriginalStem())

    @pytest.mark.parametrize("text", ["{unknown}", "{stem", "stem}", "{stem:YYYY}", ""])
    def test_malformed_templates(self, text):
        with pytest.raises(TemplateError):
            parse_template(text)

    def test_to_text_round_trip(self):
        text = "{created:YYYY-MM-DD}_{dir}_{stem}{ext}"
        assert parse_template(text).to_text() == text


class TestTemplateValidation:
    """Test template validation."""

    def test_valid_template(self):
        assert parse_template("{created}_{stem}").validate() == []

    def test_empty_template(self):
        assert NameTemplate(components=()).validate()

    def test_unknown_transform(self):
        template = NameTemplate(components=(OriginalStem(),), transforms=("shout",))
        assert any("shout" in error for error in template.validate())

    def test_literal_with_separator(self):
        template = NameTemplate(components=(Literal("a/b"),))
        assert template.validate()

    def test_unknown_component(self):
        template = NameTemplate(components=("stem",))
        assert template.validate()


class TestTargets:
    """Test placeholders in target directories."""

    def test_parse_segments(self):
        assert parse_target("Media/{ext}-{modified:YYYY}") == (
            (Literal("Media"),),
            (OriginalExtension(), Literal("-"), DateModified("YYYY")),
        )

    @pytest.mark.parametrize("text", ["{stem}", "Docs/{dir}", "{ext}/{stem}"])
    def test_name_placeholders_are_rejected(self, text):
        with pytest.raises(TemplateError, match="cannot be used in target"):
            parse_target(text)

    def test_unbalanced_brace(self):
        with pytest.raises(TemplateError):
            parse_target("Media/{ext")

    def test_static_target_is_unchanged(self, make_file):
        assert render_target("Finance/Invoices", make_file("/inbox/a.pdf")) == "Finance/Invoices"

    def test_extension_and_dates(self, make_file):
        file = make_file(
            "/inbox/photo.JPG", modified=datetime(2024, 6, 1), accessed=datetime(2025, 1, 2)
        )
        assert render_target("Media/{ext}/{modified:YYYY}/{accessed:MM}", file) == "Media/jpg/2024/01"
        assert render_target("{created}-archive", file) == "20250831-archive"

    def test_file_without_extension(self, make_file):
        assert render_target("{ext}", make_file("/inbox/Makefile")) == NO_EXTENSION_DIRECTORY

    def test_separator_in_date_format_stays_in_segment(self, make_file):
        file = make_file("/inbox/a.pdf", modified=datetime(2024, 6, 1))
        assert render_target("By date/{modified:%Y/%m}", file) == "By date/2024_06"

    def test_dots_only_value_cannot_climb(self, make_file):
        assert render_target("x/{modified:..}/y", make_file("/inbox/a.pdf")) == "x/_/y"
