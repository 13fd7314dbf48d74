"""
Filename synthesis from an ordered list of template components.

A template such as ``{created:YYYYMMDD}_{dir}_{stem}`` renders, for
``report.pdf`` created on 2025-08-31 and sorted into ``Documents``, to
``20250831_Documents_report.pdf``. Rendering is a pure function of the
template, the file snapshot and the rule; conflict suffixes are added later
by the ConflictResolver.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePath
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from file_sorter.file_access.local_accessor import FileMetadata
from file_sorter.utils.error_handler import TemplateError
from file_sorter.utils.file_utils import safe_filename, to_ascii

if TYPE_CHECKING:
    from .rules import Rule

DEFAULT_DATE_FORMAT = "YYYYMMDD"

TRANSFORMS = ("lowercase", "underscores", "ascii")

# Date tokens, longest first so YYYY wins over YY
_DATE_TOKENS = {
    "YYYY": "%Y",
    "YY": "%y",
    "MM": "%m",
    "DD": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
}
_DATE_TOKEN_PATTERN = re.compile("|".join(_DATE_TOKENS))


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class OriginalStem:
    pass


@dataclass(frozen=True)
class OriginalExtension:
    pass


@dataclass(frozen=True)
class DirectoryName:
    pass


@dataclass(frozen=True)
class DateCreated:
    format: str = DEFAULT_DATE_FORMAT


@dataclass(frozen=True)
class DateModified:
    format: str = DEFAULT_DATE_FORMAT


@dataclass(frozen=True)
class DateAccessed:
    format: str = DEFAULT_DATE_FORMAT


@dataclass(frozen=True)
class CustomText:
    text: str


Component = Union[
    Literal,
    OriginalStem,
    OriginalExtension,
    DirectoryName,
    DateCreated,
    DateModified,
    DateAccessed,
    CustomText,
]

COMPONENT_TYPES = (
    Literal,
    OriginalStem,
    OriginalExtension,
    DirectoryName,
    DateCreated,
    DateModified,
    DateAccessed,
    CustomText,
)

_DATE_COMPONENTS = {
    DateCreated: "created",
    DateModified: "modified",
    DateAccessed: "accessed",
}


@dataclass(frozen=True)
class NameTemplate:
    """Ordered recipe for a destination filename."""

    components: Tuple[Component, ...]
    include_extension: bool = True
    transforms: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept lists from callers but keep the template hashable
        object.__setattr__(self, "components", tuple(self.components))
        object.__setattr__(self, "transforms", tuple(self.transforms))

    @classmethod
    def original_name(cls) -> "NameTemplate":
        """Template that keeps the file's own name."""
        return cls(components=(OriginalStem(),))

    def validate(self) -> List[str]:
        """Return a list of problems with this template (empty if valid)."""
        errors = []

        if not self.components:
            errors.append("template has no components")

        for component in self.components:
            if not isinstance(component, COMPONENT_TYPES):
                errors.append(f"unknown template component: {component!r}")
                continue

            if isinstance(component, (Literal, CustomText)):
                if not isinstance(component.text, str):
                    errors.append(f"{type(component).__name__} text must be a string")
                elif isinstance(component, CustomText) and not component.text:
                    errors.append("custom text component is empty")
                elif isinstance(component, Literal) and any(
                    sep in component.text for sep in ("/", "\\", "\0")
                ):
                    errors.append(f"literal contains a path separator: {component.text!r}")

            if isinstance(component, tuple(_DATE_COMPONENTS)):
                try:
                    _format_date(datetime(2000, 1, 2, 3, 4, 5), component.format)
                except (ValueError, TypeError):
                    errors.append(f"invalid date format: {component.format!r}")
                else:
                    if not component.format:
                        errors.append("date format is empty")

        for transform in self.transforms:
            if transform not in TRANSFORMS:
                errors.append(f"unknown name transform: {transform}")

        return errors

    def to_text(self) -> str:
        """Inverse of parse_template (custom text is not part of the string)."""
        parts = []
        for component in self.components:
            if isinstance(component, Literal):
                parts.append(component.text.replace("{", "{{").replace("}", "}}"))
            elif isinstance(component, OriginalStem):
                parts.append("{stem}")
            elif isinstance(component, OriginalExtension):
                parts.append("{ext}")
            elif isinstance(component, DirectoryName):
                parts.append("{dir}")
            elif isinstance(component, CustomText):
                parts.append("{custom}")
            else:
                parts.append(f"{{{_DATE_COMPONENTS[type(component)]}:{component.format}}}")
        return "".join(parts)


def _to_strftime(date_format: str) -> str:
    if "%" in date_format:
        return date_format
    return _DATE_TOKEN_PATTERN.sub(lambda m: _DATE_TOKENS[m.group(0)], date_format)


def _format_date(value: datetime, date_format: str) -> str:
    return value.strftime(_to_strftime(date_format))


def _apply_transforms(text: str, transforms: Tuple[str, ...]) -> str:
    if "lowercase" in transforms:
        text = text.lower()
    if "underscores" in transforms:
        text = text.replace(" ", "_")
    if "ascii" in transforms:
        text = to_ascii(text)
    return text


def _directory_name(rule: Optional["Rule"], file: FileMetadata) -> str:
    if rule is None:
        return ""
    return PurePath(render_target(str(rule.target_directory), file)).name


def render(template: NameTemplate, file: FileMetadata, rule: Optional["Rule"] = None) -> str:
    """Render the base filename (without conflict suffix) for a file.

    Args:
        template: Name template to render
        file: Snapshot of the file being renamed
        rule: Rule the file matched; supplies the directory name

    Returns:
        Filename including the extension segment
    """
    rendered = ""
    has_extension_component = False

    for component in template.components:
        if isinstance(component, Literal):
            rendered += safe_filename(component.text)
            continue

        if isinstance(component, OriginalExtension):
            has_extension_component = True
            extension = _apply_transforms(file.raw_extension, template.transforms)
            if extension:
                rendered += extension if rendered.endswith(".") else f".{extension}"
            continue

        if isinstance(component, OriginalStem):
            text = file.stem
        elif isinstance(component, DirectoryName):
            text = _directory_name(rule, file)
        elif isinstance(component, CustomText):
            text = component.text
        elif isinstance(component, tuple(_DATE_COMPONENTS)):
            timestamp = getattr(file, _DATE_COMPONENTS[type(component)])
            text = _format_date(timestamp, component.format)
        else:
            raise TemplateError(f"Unknown template component: {component!r}")

        rendered += safe_filename(_apply_transforms(text, template.transforms))

    if not rendered.strip(". "):
        rendered = safe_filename(_apply_transforms(file.stem, template.transforms))

    if template.include_extension and not has_extension_component and file.raw_extension:
        extension = file.raw_extension
        if "lowercase" in template.transforms:
            extension = extension.lower()
        rendered += extension if rendered.endswith(".") else f".{extension}"

    return rendered


_PLACEHOLDER_PATTERN = re.compile(r"\{\{|\}\}|\{([^{}]*)\}|[{}]")


def parse_template(
    text: str,
    custom_text: Optional[str] = None,
    include_extension: bool = True,
    transforms: Tuple[str, ...] = (),
) -> NameTemplate:
    """Parse the text form of a template.

    Placeholders: ``{stem}``, ``{ext}``, ``{dir}``, ``{custom}``,
    ``{created:FMT}``, ``{modified:FMT}``, ``{accessed:FMT}``. Anything else
    is literal text; ``{{`` and ``}}`` produce literal braces.

    Raises:
        TemplateError: On unknown placeholders or unbalanced braces
    """
    if not isinstance(text, str) or not text:
        raise TemplateError("Template text must be a non-empty string")

    components: List[Component] = []
    literal = ""
    position = 0

    def flush():
        nonlocal literal
        if literal:
            components.append(Literal(literal))
            literal = ""

    for match in _PLACEHOLDER_PATTERN.finditer(text):
        literal += text[position : match.start()]
        position = match.end()
        token = match.group(0)

        if token == "{{":
            literal += "{"
            continue
        if token == "}}":
            literal += "}"
            continue
        if match.group(1) is None:
            raise TemplateError(f"Unbalanced brace in template: {text!r}")

        flush()
        components.append(_parse_placeholder(match.group(1).strip(), custom_text, text))

    literal += text[position:]
    flush()

    return NameTemplate(
        components=tuple(components),
        include_extension=include_extension,
        transforms=tuple(transforms),
    )


def _parse_placeholder(placeholder: str, custom_text: Optional[str], text: str) -> Component:
    name, _, date_format = placeholder.partition(":")
    name = name.strip()

    if name in ("created", "modified", "accessed"):
        date_format = date_format or DEFAULT_DATE_FORMAT
        component_type = {
            "created": DateCreated,
            "modified": DateModified,
            "accessed": DateAccessed,
        }[name]
        return component_type(date_format)

    if date_format:
        raise TemplateError(f"Placeholder {{{name}}} does not take a format in {text!r}")

    if name == "stem":
        return OriginalStem()
    if name == "ext":
        return OriginalExtension()
    if name == "dir":
        return DirectoryName()
    if name == "custom":
        if not custom_text:
            raise TemplateError(f"Template {text!r} uses {{custom}} but no custom text is set")
        return CustomText(custom_text)

    raise TemplateError(f"Unknown template placeholder {{{name}}} in {text!r}")


NO_EXTENSION_DIRECTORY = "no_extension"

_TARGET_COMPONENTS = (OriginalExtension, DateCreated, DateModified, DateAccessed)
_PATH_SEPARATORS = re.compile(r"[\\/]")


def has_placeholders(text: str) -> bool:
    return "{" in text or "}" in text


def parse_target(text: str) -> Tuple[Tuple[Component, ...], ...]:
    """Parse a target directory into the components of each path segment.

    A target such as ``Media/{ext}/{modified:YYYY}`` sorts files into one
    folder per extension and, inside it, one per year. Only ``{ext}`` and the
    date placeholders may appear in a target.

    Raises:
        TemplateError: On other placeholders, bad date formats or unbalanced
            braces
    """
    template = parse_template(text)

    variables = [c for c in template.components if not isinstance(c, Literal)]
    for component in variables:
        if not isinstance(component, _TARGET_COMPONENTS):
            placeholder = NameTemplate((component,)).to_text()
            raise TemplateError(f"Placeholder {placeholder} cannot be used in target {text!r}")
    if variables:
        problems = NameTemplate(tuple(variables)).validate()
        if problems:
            raise TemplateError(f"Target {text!r}: {'; '.join(problems)}")

    segments: List[List[Component]] = [[]]
    for component in template.components:
        if not isinstance(component, Literal):
            segments[-1].append(component)
            continue
        for index, part in enumerate(_PATH_SEPARATORS.split(component.text)):
            if index:
                segments.append([])
            if part:
                segments[-1].append(Literal(part))

    return tuple(tuple(segment) for segment in segments)


def render_target(text: str, file: FileMetadata) -> str:
    """Render the placeholders of a target directory for one file.

    ``{ext}`` becomes the lowercase extension, or ``no_extension`` for files
    without one. Rendered values are made filename-safe, so a placeholder can
    never add a path segment or climb out of one.
    """
    if not has_placeholders(text):
        return text

    parts = []
    for segment in parse_target(text):
        rendered = ""
        has_variable = False
        for component in segment:
            if isinstance(component, Literal):
                rendered += component.text
                continue
            has_variable = True
            if isinstance(component, OriginalExtension):
                value = file.extension or NO_EXTENSION_DIRECTORY
            else:
                timestamp = getattr(file, _DATE_COMPONENTS[type(component)])
                value = _format_date(timestamp, component.format)
            rendered += safe_filename(value)
        if has_variable and not rendered.strip(". "):
            rendered = "_"
        parts.append(rendered)

    return "/".join(parts)
