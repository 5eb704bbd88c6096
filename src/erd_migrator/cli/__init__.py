"""CLI module for ERD parsing and schema deployment.

Provides commands for inspecting an ERD file, deploying it to a
Dataverse environment, and listing configured environment profiles.

Usage:
    erd-migrator parse schema.erd
    erd-migrator parse schema.erd --strict
    ERD_PROFILE=dev erd-migrator deploy schema.erd
    erd-migrator deploy schema.erd --profile dev --dry-run
    erd-migrator profiles

Commands:
    parse     - Parse an ERD file and show what it declares
    deploy    - Create missing option sets, tables and relationships
    profiles  - List available profiles
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from erd_migrator.config.loader import DEFAULT_CONFIG_FILE, load_config
from erd_migrator.config.models import SchemaSettings
from erd_migrator.dataverse.client import DataverseError
from erd_migrator.deploy.driver import run_migration
from erd_migrator.deploy.models import ItemOutcome, MigrationResult
from erd_migrator.erd.builder import load_erd
from erd_migrator.erd.models import ErdSyntaxError, ParseDiagnostic, SchemaModel, Severity
from erd_migrator.factory import ProfileNotFoundError, get_active_profile, get_client

console = Console()

OUTCOME_STYLES = {
    ItemOutcome.CREATED: "[bold green]created[/bold green]",
    ItemOutcome.EXISTING: "[cyan]existing[/cyan]",
    ItemOutcome.FAILED: "[bold red]failed[/bold red]",
    ItemOutcome.SKIPPED: "[yellow]skipped[/yellow]",
}


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _config_path(args: argparse.Namespace) -> Path | None:
    config = getattr(args, "config", None)
    return Path(config) if config else None


def _load_settings(args: argparse.Namespace) -> SchemaSettings:
    """Schema settings from erd.toml, or defaults when no file is present.

    An explicit ``--config`` path must exist.
    """
    path = _config_path(args)
    if path is None and not (Path.cwd() / DEFAULT_CONFIG_FILE).exists():
        return SchemaSettings()
    return load_config(path).schema_settings


def _print_diagnostics(diagnostics: tuple[ParseDiagnostic, ...] | list[ParseDiagnostic]) -> None:
    for diagnostic in diagnostics:
        style = "red" if diagnostic.severity is Severity.ERROR else "yellow"
        console.print(f"  [{style}]{escape(diagnostic.format())}[/{style}]")


def _print_model(model: SchemaModel) -> None:
    if model.enums:
        enum_table = Table(title="Enums", show_header=True, header_style="bold")
        enum_table.add_column("Enum")
        enum_table.add_column("Values")
        for enum in model.enums.values():
            enum_table.add_row(enum.name, ", ".join(enum.values))
        console.print(enum_table)

    table_table = Table(title="Tables", show_header=True, header_style="bold")
    table_table.add_column("Table")
    table_table.add_column("Schema Name", style="cyan")
    table_table.add_column("Fields")
    for table in model.tables.values():
        schema_name = table.schema_name
        if table.is_reserved:
            schema_name += " [dim](existing)[/dim]"
        fields = ", ".join(
            f"{f.name}:{f.kind.value}" for f in table.fields.values()
        )
        table_table.add_row(table.name, schema_name, fields)
    console.print(table_table)

    relationships = model.resolved_relationships + model.user_relationships
    if relationships:
        rel_table = Table(title="Relationships", show_header=True, header_style="bold")
        rel_table.add_column("Schema Name", style="cyan")
        rel_table.add_column("Referenced")
        rel_table.add_column("Referencing")
        rel_table.add_column("Lookup")
        for rel in relationships:
            rel_table.add_row(
                rel.schema_name,
                rel.referenced_entity,
                rel.referencing_entity,
                rel.lookup_schema_name,
            )
        console.print(rel_table)


def _print_result(result: MigrationResult) -> None:
    summary = Table(title="Deployment Summary", show_header=True, header_style="bold")
    summary.add_column("Category")
    summary.add_column("Declared", justify="right")
    summary.add_column("Created", justify="right")
    summary.add_column("Existing", justify="right")
    summary.add_column("Failed", justify="right")
    for report in result.reports:
        failed = f"[red]{report.failed}[/red]" if report.failed else "0"
        summary.add_row(
            report.category.value.replace("_", " "),
            str(report.declared),
            str(report.created),
            str(report.existing),
            failed,
        )
    console.print(summary)

    details = Table(show_header=True, header_style="bold")
    details.add_column("Object", style="dim")
    details.add_column("Outcome")
    details.add_column("Detail")
    for report in result.reports:
        for item in report.items:
            details.add_row(
                item.name,
                OUTCOME_STYLES[item.outcome],
                escape(item.error or item.note or item.identifier or ""),
            )
    if details.row_count:
        console.print(details)


# ============================================================================
# Command implementations
# ============================================================================


def cmd_parse(args: argparse.Namespace) -> int:
    """Parse an ERD file and print its tables, enums and relationships.

    Returns:
        0 on success, 1 on unreadable input or (with ``--strict``) syntax errors.
    """
    try:
        settings = _load_settings(args)
        model = load_erd(
            args.erd_file,
            prefix=settings.prefix,
            reserved_marker=settings.reserved_marker,
            strict=args.strict,
        )
    except ErdSyntaxError as e:
        console.print("[bold red]x[/bold red] ERD source has syntax errors:")
        _print_diagnostics(e.diagnostics)
        return 1
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    _print_model(model)

    if model.diagnostics:
        console.print()
        console.print("[bold]Diagnostics:[/bold]")
        _print_diagnostics(model.diagnostics)

    return 0


def cmd_deploy(args: argparse.Namespace) -> int:
    """Converge the target environment towards an ERD file.

    With ``--dry-run`` no profile is needed and nothing remote is called.

    Returns:
        0 when no item failed, 1 otherwise.
    """
    env_prefix = getattr(args, "env_prefix", "")

    try:
        if args.dry_run:
            settings = _load_settings(args)
        else:
            name, profile, config = get_active_profile(
                args.profile, env_prefix=env_prefix, config_path=_config_path(args)
            )
            settings = config.schema_settings
        model = load_erd(
            args.erd_file,
            prefix=settings.prefix,
            reserved_marker=settings.reserved_marker,
        )
    except (FileNotFoundError, ValueError, ProfileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    if model.diagnostics:
        console.print("[bold]Diagnostics:[/bold]")
        _print_diagnostics(model.diagnostics)
        console.print()

    if args.dry_run:
        result = run_migration(model, None, settings, dry_run=True)
    else:
        console.print(f"Deploying to profile: [bold cyan]{name}[/bold cyan]", style="dim")
        try:
            with get_client(profile, env_prefix=env_prefix) as client:
                result = run_migration(model, client, settings)
        except (ProfileNotFoundError, DataverseError) as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            return 1

    _print_result(result)

    if result.dry_run:
        console.print()
        console.print("[bold yellow]DRY RUN[/bold yellow] - No changes made.")
        return 0

    if result.success:
        console.print(
            f"[bold green]v[/bold green] Deployment complete "
            f"({result.created_count} created)."
        )
        return 0

    console.print("[bold red]x[/bold red] Deployment finished with failures.")
    return 1


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from erd.toml.

    Reads only local TOML config -- no remote calls.

    Returns:
        0 on success, 1 if erd.toml not found.
    """
    try:
        config = load_config(_config_path(args))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    table = Table(title="Environment Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("URL")
    table.add_column("Solution")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(name, profile.url, profile.solution or "", profile.description or "")

    console.print(table)
    console.print(f"[dim]Prefix:[/dim] {config.schema_settings.prefix}")

    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="erd-migrator",
        description="Deploy ERD schema definitions to Dataverse",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_ERD_PROFILE)"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to config file (default: ./{DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # parse command
    p_parse = subparsers.add_parser(
        "parse",
        help="Parse an ERD file and show what it declares",
    )
    p_parse.add_argument("erd_file", help="Path to the ERD file")
    p_parse.add_argument(
        "--strict",
        action="store_true",
        help="Fail on syntax errors instead of dropping malformed statements",
    )
    p_parse.set_defaults(func=cmd_parse)

    # deploy command
    p_deploy = subparsers.add_parser(
        "deploy",
        help="Create missing option sets, tables and relationships",
    )
    p_deploy.add_argument("erd_file", help="Path to the ERD file")
    p_deploy.add_argument(
        "--profile",
        "-p",
        default=None,
        help="Environment profile from erd.toml (default: ERD_PROFILE)",
    )
    p_deploy.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be created without contacting the environment",
    )
    p_deploy.set_defaults(func=cmd_deploy)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    args = parser.parse_args()
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
