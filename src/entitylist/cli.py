"""Typer-based CLI entry point."""

from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from entitylist.application.dtos import AccessScope
from entitylist.domain.fields import FieldResolver, FieldSchema, MappingFieldResolver
from entitylist.domain.wards import WARD_SCHEMA, WardFieldResolver
from entitylist.errors import EntityListError, RecordNotFoundError
from entitylist.events.bus import EventBus
from entitylist.gui.viewmodels.list_controller import ListController
from entitylist.infrastructure.json_source import JsonFileRecordSource
from entitylist.settings.store import PreferenceStore
from entitylist.storage.json_storage import JsonFileStorage

app = typer.Typer(help="Browse and manage entity lists with saved view preferences")
console = Console()


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _schema_and_resolver(
    fields: Optional[str], boolean: List[str], namespace: Optional[str]
) -> tuple[FieldSchema, FieldResolver]:
    if not fields:
        return WARD_SCHEMA, WardFieldResolver()
    names = [name.strip() for name in fields.split(",") if name.strip()]
    schema = FieldSchema.build(
        names,
        storage_namespace=namespace or "entitylist.records",
        boolean_fields=boolean,
    )
    return schema, MappingFieldResolver()


def _scope(subject: str, tenant: Optional[str], all_tenants: bool) -> AccessScope:
    return AccessScope(subject_id=subject, tenant_id=tenant or "", can_manage_all=all_tenants)


def _parse_filter(raw: str) -> tuple[str, Optional[str], str]:
    parts = raw.split(":", 2)
    if len(parts) == 2:
        return parts[0], None, parts[1]
    if len(parts) == 3:
        return parts[0], parts[1], parts[2]
    raise typer.BadParameter(f"expected field:operator:value or field:value, got {raw!r}")


def _render(controller: ListController, resolver: FieldResolver) -> None:
    view = controller.view
    table = Table(show_lines=controller.density.value == "comfortable")
    for name in view.visible_columns:
        table.add_column(name.capitalize())
    for record in view.items:
        table.add_row(*(resolver.resolve(record, name) for name in view.visible_columns))
    sort = controller.sort_spec.value
    console.print(table)
    console.print(
        f"page {view.page}/{view.total_pages} · {view.filtered_count} of {view.total_count} records"
        f" · sorted by {sort.field} {sort.direction.value} · source: {view.source.value}",
        soft_wrap=True,
    )
    if view.has_no_results:
        print("[yellow]No records match the current search and filters")
    if controller.error_code.value:
        print(f"[red]Could not load data ({controller.error_code.value})")
    if controller.notice.value is not None:
        print(f"[green]{controller.notice.value.value}")


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except EntityListError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


@app.command()
@_handle_errors
def browse(
    records: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file of records"),
    search: Optional[str] = typer.Option(None, help="Free-text search"),
    scope: Optional[str] = typer.Option(None, help="Search scope: all or a field name"),
    filter_: List[str] = typer.Option([], "--filter", help="field:operator:value (repeatable)"),
    logic: Optional[str] = typer.Option(None, help="Combine filters with AND or OR"),
    sort: Optional[str] = typer.Option(None, help="Sort field"),
    desc: bool = typer.Option(False, help="Sort descending"),
    page: Optional[int] = typer.Option(None, min=1),
    page_size: Optional[int] = typer.Option(None),
    hide: List[str] = typer.Option([], help="Hide a column (repeatable)"),
    show: List[str] = typer.Option([], help="Show a hidden column (repeatable)"),
    subject: str = typer.Option("anonymous", help="Subject the preferences belong to"),
    tenant: Optional[str] = typer.Option(None, help="Tenant id for own-tenant scope"),
    all_tenants: bool = typer.Option(False, help="Manage every tenant"),
    offline: bool = typer.Option(False, help="Skip the fetch and serve the cached snapshot"),
    fields: Optional[str] = typer.Option(None, help="Comma-separated field names (default: ward fields)"),
    boolean: List[str] = typer.Option([], help="Boolean-like field (repeatable)"),
    namespace: Optional[str] = typer.Option(None, help="Storage namespace for custom fields"),
    storage_dir: Optional[Path] = typer.Option(None, help="Preference/cache directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Show one page of RECORDS with saved and overridden view settings."""

    _configure_logging(verbose)
    schema, resolver = _schema_and_resolver(fields, boolean, namespace)
    source = JsonFileRecordSource(records)

    async def _run() -> None:
        controller = ListController(
            schema,
            resolver,
            source,
            JsonFileStorage(storage_dir),
            _scope(subject, tenant, all_tenants),
            EventBus(),
            remover=source,
            is_offline=offline,
        )
        await controller.mount()
        if scope is not None:
            controller.set_search_scope(scope)
        if search is not None:
            controller.search(search)
        if filter_:
            # replace the stored filter rows, keeping search text and scope
            for filter_id in controller.filters.value.ids():
                controller.remove_filter(filter_id)
            for index, raw in enumerate(filter_):
                field_name, operator, value = _parse_filter(raw)
                filter_id = controller.filters.value.criteria[0].id if index == 0 else controller.add_filter()
                if filter_id is None:
                    print("[yellow]Filter limit reached; ignoring the rest")
                    break
                controller.set_filter_field(filter_id, field_name)
                if operator is not None:
                    controller.set_filter_operator(filter_id, operator)
                controller.set_filter_value(filter_id, value)
        if logic is not None:
            controller.set_filter_logic(logic.upper())
        if sort is not None:
            controller.set_sort(sort, "desc" if desc else "asc")
        if page_size is not None:
            controller.set_page_size(page_size)
        for name in hide:
            if name in controller.columns.value.visible:
                controller.toggle_column(name)
        for name in show:
            if name not in controller.columns.value.visible:
                controller.toggle_column(name)
        if page is not None:
            controller.set_page(page)
        await controller.flush()
        _render(controller, resolver)
        controller.dispose()

    asyncio.run(_run())


@app.command()
@_handle_errors
def delete(
    records: Path = typer.Argument(..., exists=True, dir_okay=False),
    ids: List[str] = typer.Argument(..., help="Record ids to delete"),
    subject: str = typer.Option("anonymous"),
    tenant: Optional[str] = typer.Option(None),
    all_tenants: bool = typer.Option(False),
    storage_dir: Optional[Path] = typer.Option(None),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Delete records by id, continuing past individual failures."""

    _configure_logging(verbose)
    schema, resolver = WARD_SCHEMA, WardFieldResolver()
    source = JsonFileRecordSource(records)

    async def _run() -> None:
        controller = ListController(
            schema,
            resolver,
            source,
            JsonFileStorage(storage_dir),
            _scope(subject, tenant, all_tenants),
            EventBus(),
            remover=source,
        )
        await controller.mount()
        universe = {resolver.record_id(record) for record in controller.items}
        for record_id in ids:
            if record_id in universe:
                controller.toggle_selection(record_id)
            else:
                print(f"[yellow]Unknown id {record_id} (not in the saved view); skipped")
        if not controller.selection.count:
            controller.dispose()
            raise RecordNotFoundError(f"none of {', '.join(ids)} is listed in the saved view of {records}")
        result = await controller.bulk_delete()
        await controller.flush()
        controller.dispose()
        print(f"[green]Removed {result.removed_count} of {result.attempted} record(s)")
        if result.skipped_ids:
            print(f"[yellow]Skipped (outside your tenant): {', '.join(result.skipped_ids)}")
        if result.failed_ids:
            print(f"[red]Failed: {', '.join(result.failed_ids)}")

    asyncio.run(_run())


@app.command("reset-prefs")
@_handle_errors
def reset_prefs(
    subject: str = typer.Option("anonymous"),
    tenant: Optional[str] = typer.Option(None),
    all_tenants: bool = typer.Option(False),
    fields: Optional[str] = typer.Option(None),
    namespace: Optional[str] = typer.Option(None),
    storage_dir: Optional[Path] = typer.Option(None),
) -> None:
    """Forget the stored view preferences for a subject and scope."""

    schema, _ = _schema_and_resolver(fields, [], namespace)
    access = _scope(subject, tenant, all_tenants)
    store = PreferenceStore(JsonFileStorage(storage_dir), schema, access.subject_id, access.storage_scope)
    asyncio.run(store.clear())
    print(f"[green]Cleared {store.key}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
