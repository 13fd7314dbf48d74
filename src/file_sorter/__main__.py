"""
Command line interface for file sorter.
"""

import signal
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from tqdm import tqdm

from file_sorter.app import FileSorterApp
from file_sorter.file_access.relocator import OutcomeStatus
from file_sorter.organization_logic.rule_manager import RuleManager
from file_sorter.utils.cancellation import CancellationToken
from file_sorter.utils.config_manager import ConfigManager
from file_sorter.utils.error_handler import ValidationError
from file_sorter.utils.file_utils import human_readable_size


def _make_app(ctx: click.Context, **overrides: Any) -> FileSorterApp:
    options: Dict[str, Any] = dict(ctx.obj or {})
    config_file = options.pop("config_file", None)
    options.update({k: v for k, v in overrides.items() if v is not None})
    app = FileSorterApp(config_file=config_file, cli_overrides=options)
    try:
        app.initialize()
    except ValueError as e:
        raise click.ClickException(str(e))
    return app


def _load_rules(app: FileSorterApp, rules_file: str):
    try:
        return app.load_rules(rules_file)
    except ValidationError as e:
        for error in e.errors or [str(e)]:
            click.echo(f"  error: {error}", err=True)
        raise click.ClickException(f"Cannot load rules from {rules_file}")


def _print_validation(result) -> bool:
    for warning in result.warnings:
        click.echo(f"  warning: {warning}")
    for error in result.errors:
        click.echo(f"  error: {error}", err=True)
    return result.is_valid


def _print_plan(rule_set, entries):
    for entry in entries:
        rule = entry.match.rule(rule_set)
        label = rule.name if rule else "-"
        destination = entry.planned_destination or "(skipped)"
        click.echo(f"{entry.source_path} -> {destination}  [{label}]")

    planned = sum(1 for entry in entries if entry.planned_destination is not None)
    click.echo(f"\n{planned} of {len(entries)} files would be moved")


@click.group()
@click.option("--config", "config_file", type=click.Path(), help="Configuration file (YAML or JSON)")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option("--log-file", type=click.Path(), help="Also write the log to this file")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: Optional[str], log_file: Optional[str]):
    """Organize files into folders by rules."""
    ctx.obj = {"config_file": config_file, "log_level": log_level, "log_file": log_file}


@cli.command()
@click.argument("rules_file", type=click.Path(exists=True))
@click.option("--root", type=click.Path(file_okay=False), help="Organization root")
@click.pass_context
def validate(ctx: click.Context, rules_file: str, root: Optional[str]):
    """Check a rule set without touching any file."""
    app = _make_app(ctx, root=root)
    rule_set = _load_rules(app, rules_file)
    result = app.validate(rule_set)

    if not _print_validation(result):
        raise click.ClickException(f"{len(result.errors)} problem(s) in {rules_file}")
    click.echo(f"{rules_file}: {len(rule_set)} rules OK")


@cli.command()
@click.argument("rules_file", type=click.Path(exists=True))
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--root", type=click.Path(file_okay=False), help="Organization root")
@click.option("--recursive/--no-recursive", default=None, help="Scan subdirectories")
@click.option("--exclude", multiple=True, type=click.Path(), help="File to leave alone")
@click.pass_context
def plan(
    ctx: click.Context,
    rules_file: str,
    paths: List[str],
    root: Optional[str],
    recursive: Optional[bool],
    exclude: List[str],
):
    """Show where each file would go."""
    app = _make_app(ctx, root=root, recursive=recursive)
    rule_set = _load_rules(app, rules_file)
    if not _print_validation(app.validate(rule_set)):
        raise click.ClickException("Rule set is invalid")

    candidates = app.collect(paths)
    _print_plan(rule_set, app.plan(rule_set, candidates, exclude=exclude))


@cli.command()
@click.argument("rules_file", type=click.Path(exists=True))
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--root", type=click.Path(file_okay=False), help="Organization root")
@click.option("--recursive/--no-recursive", default=None, help="Scan subdirectories")
@click.option("--exclude", multiple=True, type=click.Path(), help="File to leave alone")
@click.option("--workers", "max_workers", type=int, help="Worker threads")
@click.option("--verify-checksum/--no-verify-checksum", default=None, help="Checksum cross-device copies")
@click.option("--progress/--no-progress", "show_progress", default=None, help="Show a progress bar")
@click.option("--dry-run/--no-dry-run", default=None, help="Only show where each file would go")
@click.option("--report", type=click.Path(), help="Write an error report (JSON) here")
@click.pass_context
def run(
    ctx: click.Context,
    rules_file: str,
    paths: List[str],
    root: Optional[str],
    recursive: Optional[bool],
    exclude: List[str],
    max_workers: Optional[int],
    verify_checksum: Optional[bool],
    show_progress: Optional[bool],
    dry_run: Optional[bool],
    report: Optional[str],
):
    """Move files into place. Ctrl-C stops after the files in progress."""
    app = _make_app(
        ctx,
        root=root,
        recursive=recursive,
        max_workers=max_workers,
        verify_checksum=verify_checksum,
        dry_run=dry_run,
        show_progress=show_progress,
    )
    rule_set = _load_rules(app, rules_file)
    if not _print_validation(app.validate(rule_set)):
        raise click.ClickException("Rule set is invalid")

    candidates = app.collect(paths)
    if app.config_manager.get("organization.dry_run", False):
        click.echo("Dry run: no files will be moved")
        _print_plan(rule_set, app.plan(rule_set, candidates, exclude=exclude))
        return

    total_size = sum(path.stat().st_size for path in candidates if path.exists())
    click.echo(f"Organizing {len(candidates)} files ({human_readable_size(total_size)})")

    token = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    outcomes = []
    try:
        with tqdm(
            total=len(candidates),
            desc="Organizing",
            unit="file",
            disable=not app.config_manager.get("ui.show_progress", True),
        ) as progress:
            for outcome in app.execute(rule_set, candidates, token, exclude=exclude):
                outcomes.append(outcome)
                progress.update(1)
                if outcome.status == OutcomeStatus.FAILED:
                    tqdm.write(f"Failed: {outcome.source}: {outcome.error}")
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    summary = app.summarize(outcomes)
    click.echo(
        f"\nMoved: {summary['moved']}  Skipped: {summary['skipped']}  Failed: {summary['failed']}"
    )
    for reason, count in summary["skip_reasons"].items():
        click.echo(f"  skipped ({reason}): {count}")
    for kind, count in summary["errors_by_kind"].items():
        click.echo(f"  failed ({kind}): {count}")
    if token.is_cancelled:
        click.echo("Run was cancelled")

    if report:
        app.error_handler.save_error_report(Path(report))
        click.echo(f"Error report written to {report}")

    if summary["failed"]:
        ctx.exit(1)


@cli.command("init-config")
@click.argument("output", type=click.Path())
@click.option("--format", "fmt", type=click.Choice(["yaml", "json"]), default="yaml")
@click.option("--example-rules", type=click.Path(), help="Also write an example rule set here")
def init_config(output: str, fmt: str, example_rules: Optional[str]):
    """Write a configuration template."""
    ConfigManager().create_template(Path(output), fmt)
    click.echo(f"Configuration template written to {output}")

    if example_rules:
        manager = RuleManager()
        manager.save(manager.generate_example_rules(), example_rules)
        click.echo(f"Example rules written to {example_rules}")


if __name__ == "__main__":
    cli()
