"""CLI for schema diagnostics, layer snapshots, diffs and DDL export.

Usage:
    schemascope analyze export.json
    schemascope import export.json --name baseline
    schemascope introspect --url postgresql://localhost/app --save current
    schemascope layers
    schemascope show <layer-id>
    schemascope delete <layer-id>
    schemascope diff <base-id> <draft-id>
    schemascope export-sql <base-id> <draft-id> --output migration.sql

Commands:
    analyze     - Report orphans, cycles, type mismatches, missing indexes
    import      - Save a schema JSON file as a new layer
    introspect  - Read a live PostgreSQL schema (optionally save as layer)
    layers      - List saved layers
    show        - Show one layer's tables
    delete      - Delete a layer
    diff        - Show the structural diff between two layers
    export-sql  - Render the diff between two layers as DDL
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from schemascope.config import AppConfig, load_config
from schemascope.errors import MalformedSchemaError
from schemascope.layers.models import Layer, SchemaDiff
from schemascope.layers.store import LayerStore
from schemascope.schema.models import DiagnosticResult, is_junction_table
from schemascope.schema.parser import load_schema_file
from schemascope.service import SchemaService

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _load_config(args: argparse.Namespace) -> AppConfig:
    return load_config(getattr(args, "config", None))


def _make_service(config: AppConfig) -> SchemaService:
    store = LayerStore(config.layers.dir)
    store.load()
    return SchemaService(store)


def _score_style(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 50:
        return "yellow"
    return "red"


def _print_diagnostics(result: DiagnosticResult) -> None:
    summary = result.summary

    summary_table = Table(title="Schema Diagnostics", show_header=False)
    summary_table.add_column("Key", style="dim")
    summary_table.add_column("Value")
    summary_table.add_row("Tables", str(summary.total_tables))
    summary_table.add_row("Relationships", str(summary.total_relationships))
    summary_table.add_row("Issues", str(summary.total_issues))
    summary_table.add_row(
        "Average health",
        f"[{_score_style(summary.average_health)}]{summary.average_health}"
        f"[/{_score_style(summary.average_health)}]",
    )
    console.print(summary_table)

    if summary.total_issues:
        console.print()
        console.print(result.format_report())

    if result.health_scores:
        console.print()
        health_table = Table(title="Table Health", show_header=True, header_style="bold")
        health_table.add_column("Table", style="dim")
        health_table.add_column("Score", justify="right")
        health_table.add_column("Issues")

        for health in sorted(result.health_scores, key=lambda h: (h.score, h.table)):
            style = _score_style(health.score)
            health_table.add_row(
                health.table,
                f"[{style}]{health.score}[/{style}]",
                "; ".join(health.issues) or "-",
            )

        console.print(health_table)


def _print_diff(diff: SchemaDiff) -> None:
    if diff.is_empty:
        console.print("[bold green]v[/bold green] Layers are identical")
        return

    diff_table = Table(title="Layer Diff", show_header=True, header_style="bold")
    diff_table.add_column("Table", style="dim")
    diff_table.add_column("Change")

    for table in diff.added:
        diff_table.add_row(table.name, "[bold green]NEW TABLE[/bold green]")

    for table_name in diff.removed:
        diff_table.add_row(table_name, "[bold red]DROPPED[/bold red]")

    for mod in diff.modified:
        changes: list[str] = []
        for col in mod.added_columns:
            changes.append(f"[green]+ column {col.name}[/green]")
        for col_name in mod.removed_columns:
            changes.append(f"[red]- column {col_name}[/red]")
        for col_mod in mod.modified_columns:
            changes.append(f"[yellow]~ column {col_mod.name}[/yellow]")
        for fk in mod.added_foreign_keys:
            changes.append(f"[green]+ fk {fk.column} -> {fk.references}[/green]")
        for fk in mod.removed_foreign_keys:
            changes.append(f"[red]- fk {fk.column} -> {fk.references}[/red]")
        for idx in mod.added_indexes:
            changes.append(f"[green]+ index {idx.name}[/green]")
        for idx_name in mod.removed_indexes:
            changes.append(f"[red]- index {idx_name}[/red]")
        diff_table.add_row(mod.table_name, "\n".join(changes))

    console.print(diff_table)


# ============================================================================
# Commands
# ============================================================================


def cmd_analyze(args: argparse.Namespace) -> int:
    """Analyze a schema JSON file.

    Returns:
        0 on success, 1 if the file cannot be read or is malformed.
    """
    try:
        schema = load_schema_file(args.schema_file)
    except (FileNotFoundError, MalformedSchemaError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    service = SchemaService(LayerStore(_load_config(args).layers.dir))
    result = service.get_diagnostics(schema)
    if not result.success:
        console.print(f"[red]Error: {result.error}[/red]")
        return 1

    if args.json:
        print(json.dumps(result.data.to_json_dict(), indent=2))
    else:
        _print_diagnostics(result.data)
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    """Save a schema JSON file as a new layer."""
    path = Path(args.schema_file)
    if not path.exists():
        console.print(f"[red]Error: Schema file not found: {path}[/red]")
        return 1

    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: {path.name} is not valid JSON: {e}[/red]")
        return 1

    service = _make_service(_load_config(args))
    result = service.import_schema(payload, name=args.name, description=args.description)

    if not result.success:
        console.print(f"[bold red]x[/bold red] {result.error}")
        return 1

    console.print(
        f"[bold green]v[/bold green] Saved layer [bold cyan]{result.data.id}[/bold cyan] "
        f"({len(result.data.tables)} tables)"
    )
    return 0


async def _async_introspect(args: argparse.Namespace) -> int:
    """Async implementation for introspect command."""
    from schemascope.schema.introspector import SchemaIntrospector

    config = _load_config(args)
    url = args.url or config.database.url
    if not url:
        console.print("[yellow]No database URL configured.[/yellow]")
        console.print(
            "[dim]Pass[/dim] [cyan]--url[/cyan] [dim]or set[/dim] "
            "[cyan]database.url[/cyan] [dim]in schemascope.toml.[/dim]"
        )
        return 1

    schema_name = args.schema or config.database.schema_name
    excluded = (
        set(config.database.excluded_tables)
        if config.database.excluded_tables is not None
        else None
    )

    console.print("Introspecting database...", style="dim")
    try:
        async with SchemaIntrospector(
            url,
            excluded_tables=excluded,
            connect_timeout=config.database.connect_timeout,
        ) as introspector:
            schema = await introspector.introspect(schema_name)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] Introspection failed: {e}")
        return 1

    console.print(
        f"[bold green]v[/bold green] Found {len(schema.tables)} tables, "
        f"{len(schema.relationships)} relationships in [bold]{schema_name}[/bold]"
    )

    if args.save:
        service = _make_service(config)
        result = service.save_layer(
            Layer(name=args.save, base_schema=schema_name, tables=schema.tables)
        )
        if not result.success:
            console.print(f"[bold red]x[/bold red] {result.error}")
            return 1
        console.print(
            f"[bold green]v[/bold green] Saved layer "
            f"[bold cyan]{result.data.id}[/bold cyan]"
        )
    elif args.output:
        Path(args.output).write_text(json.dumps(schema.to_json_dict(), indent=2))
        console.print(f"[dim]Wrote {args.output}[/dim]")

    return 0


def cmd_introspect(args: argparse.Namespace) -> int:
    """Introspect a live database.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_introspect(args))


def cmd_layers(args: argparse.Namespace) -> int:
    """List saved layers."""
    service = _make_service(_load_config(args))
    layers = service.list_layers().data or []

    if not layers:
        console.print("[yellow]No layers saved.[/yellow]")
        return 0

    table = Table(title="Layers", show_header=True, header_style="bold")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Tables", justify="right")
    table.add_column("Updated", style="dim")
    table.add_column("Description")

    for layer in layers:
        table.add_row(
            layer.id or "",
            layer.name,
            str(len(layer.tables)),
            layer.updated_at.isoformat(timespec="seconds") if layer.updated_at else "",
            layer.description or "",
        )

    console.print(table)
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show one layer's tables."""
    service = _make_service(_load_config(args))
    result = service.get_layer(args.layer_id)
    if not result.success:
        console.print(f"[red]Error: {result.error}[/red]")
        return 1

    layer = result.data
    if args.json:
        print(json.dumps(layer.to_json_dict(), indent=2))
        return 0

    table = Table(
        title=f"{layer.name} ({layer.id})", show_header=True, header_style="bold"
    )
    table.add_column("Table", style="dim")
    table.add_column("Columns", justify="right")
    table.add_column("Foreign keys", justify="right")
    table.add_column("Indexes", justify="right")
    table.add_column("Primary key")

    for t in layer.tables:
        table.add_row(
            t.name,
            str(len(t.columns)),
            str(len(t.foreign_keys)),
            str(len(t.indexes)),
            ", ".join(t.primary_keys) or "-",
        )

    console.print(table)

    junctions = [t.name for t in layer.tables if is_junction_table(t)]
    if junctions:
        console.print(f"Junction tables: {', '.join(junctions)}")
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    """Delete a layer."""
    service = _make_service(_load_config(args))
    result = service.delete_layer(args.layer_id)
    if not result.success:
        console.print(f"[red]Error: {result.error}[/red]")
        return 1

    console.print(f"[bold green]v[/bold green] Deleted layer {args.layer_id}")
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    """Show the diff between two layers."""
    service = _make_service(_load_config(args))
    result = service.diff_layers(args.base_id, args.draft_id)
    if not result.success:
        console.print(f"[red]Error: {result.error}[/red]")
        return 1

    if args.json:
        print(json.dumps(result.data.to_json_dict(), indent=2))
    else:
        _print_diff(result.data)
    return 0


def cmd_export_sql(args: argparse.Namespace) -> int:
    """Render the diff between two layers as DDL."""
    service = _make_service(_load_config(args))
    diff_result = service.diff_layers(args.base_id, args.draft_id)
    if not diff_result.success:
        console.print(f"[red]Error: {diff_result.error}[/red]")
        return 1

    sql_result = service.export_sql(diff_result.data)
    if not sql_result.success:
        console.print(f"[red]Error: {sql_result.error}[/red]")
        return 1

    if args.output:
        Path(args.output).write_text(sql_result.data + "\n")
        console.print(f"[bold green]v[/bold green] Wrote {args.output}")
    else:
        print(sql_result.data)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schemascope",
        description="Schema diagnostics, layer snapshots, diffs and DDL export",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to schemascope.toml (default: ./schemascope.toml if present)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_analyze = subparsers.add_parser("analyze", help="Run schema diagnostics")
    p_analyze.add_argument("schema_file", help="Schema JSON file (model or export rows)")
    p_analyze.add_argument("--json", action="store_true", help="Print raw JSON")
    p_analyze.set_defaults(func=cmd_analyze)

    p_import = subparsers.add_parser("import", help="Save a schema JSON file as a layer")
    p_import.add_argument("schema_file", help="Schema JSON file (model or export rows)")
    p_import.add_argument("--name", default="Imported Schema", help="Layer name")
    p_import.add_argument(
        "--description", default="Schema imported from JSON", help="Layer description"
    )
    p_import.set_defaults(func=cmd_import)

    p_introspect = subparsers.add_parser(
        "introspect", help="Introspect a live PostgreSQL database"
    )
    p_introspect.add_argument("--url", default=None, help="Database URL")
    p_introspect.add_argument("--schema", default=None, help="Schema name (default: public)")
    p_introspect.add_argument("--save", default=None, metavar="NAME", help="Save as layer")
    p_introspect.add_argument("--output", default=None, help="Write schema JSON to file")
    p_introspect.set_defaults(func=cmd_introspect)

    p_layers = subparsers.add_parser("layers", help="List saved layers")
    p_layers.set_defaults(func=cmd_layers)

    p_show = subparsers.add_parser("show", help="Show a layer")
    p_show.add_argument("layer_id")
    p_show.add_argument("--json", action="store_true", help="Print raw JSON")
    p_show.set_defaults(func=cmd_show)

    p_delete = subparsers.add_parser("delete", help="Delete a layer")
    p_delete.add_argument("layer_id")
    p_delete.set_defaults(func=cmd_delete)

    p_diff = subparsers.add_parser("diff", help="Diff two layers")
    p_diff.add_argument("base_id")
    p_diff.add_argument("draft_id")
    p_diff.add_argument("--json", action="store_true", help="Print raw JSON")
    p_diff.set_defaults(func=cmd_diff)

    p_export = subparsers.add_parser("export-sql", help="Render a layer diff as DDL")
    p_export.add_argument("base_id")
    p_export.add_argument("draft_id")
    p_export.add_argument("--output", "-o", default=None, help="Write SQL to file")
    p_export.set_defaults(func=cmd_export_sql)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging.level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
