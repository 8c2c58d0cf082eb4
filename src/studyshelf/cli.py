"""Command line interface for StudyShelf."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any, Iterable, Optional

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from studyshelf.config import ConfigError, ConfigManager, ShelfConfig, resolve_with_precedence
from studyshelf.library import InvalidParentError, Item, ItemNotFoundError, SortOrder
from studyshelf.library.models import ContentKind, ItemKind
from studyshelf.log_config import configure_logging
from studyshelf.shelf import StudyShelf

console = Console()

_KIND_FILTERS: dict[str, tuple[Optional[ItemKind], Optional[ContentKind]]] = {
    "folder": ("folder", None),
    "pdf": ("file", "pdf"),
    "note": ("file", "note"),
    "whiteboard": ("whiteboard", None),
}
_SORT_CHOICES = [order.value for order in SortOrder]


class ConsoleNotifier:
    """Print shelf notifications to the terminal."""

    def __init__(self, *, quiet: bool = False) -> None:
        self._quiet = quiet

    def notify(self, title: str, message: str) -> None:
        if not self._quiet:
            console.print(f"[cyan]{title}:[/cyan] {message}")


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.

    Raises:
        SystemExit: When emitting JSON output.
        click.ClickException: For non-JSON flows.
    """
    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)
    raise click.ClickException(message)


def _emit_message(message: Any, *, quiet: bool, mode: str = "detail") -> None:
    """Print ``message`` unless quiet mode suppresses it."""
    if quiet and mode != "error":
        return
    console.print(message)


def _open_shelf(ctx: click.Context, *, json_output: bool = False) -> StudyShelf:
    """Load configuration, set up logging, and open the library.

    Notifications are silenced in quiet mode and whenever JSON is emitted.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    obj = ctx.ensure_object(dict)
    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    quiet = bool(obj.get("quiet")) or config.cli.quiet_default
    obj["quiet"] = quiet
    obj["config"] = config
    configure_logging(config.logging, Path(config.storage.data_dir).expanduser())
    return StudyShelf.open(config, notifier=ConsoleNotifier(quiet=quiet or json_output))


def _quiet(ctx: click.Context) -> bool:
    return bool(ctx.ensure_object(dict).get("quiet"))


def _resolve_item(shelf: StudyShelf, token: str) -> Item:
    """Return the item whose id equals or uniquely starts with ``token``.

    Raises:
        click.ClickException: If no item or several items match.
    """
    item = shelf.get_item(token)
    if item is not None:
        return item

    prefix = token.strip().upper()
    matches = [candidate for candidate in shelf.items if candidate.id.upper().startswith(prefix)]
    if not prefix or not matches:
        raise click.ClickException(f"No item matches '{token}'.")
    if len(matches) > 1:
        names = ", ".join(f"{match.id[:8]} ({match.name})" for match in matches[:5])
        raise click.ClickException(f"'{token}' is ambiguous: {names}")
    return matches[0]


def _resolve_folder(shelf: StudyShelf, token: Optional[str]) -> Optional[str]:
    if token is None or token == "/":
        return None
    folder = _resolve_item(shelf, token)
    if folder.kind != "folder":
        raise click.ClickException(f"{folder.name} is not a folder.")
    return folder.id


def _kind_label(item: Item) -> str:
    content_kind = getattr(item, "content_kind", None)
    return content_kind if content_kind else item.kind


def _breadcrumb(names: Iterable[str]) -> str:
    return " / ".join(["Home", *names])


def _items_table(items: list[Item], *, title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Modified")
    for item in items:
        table.add_row(
            item.id[:8],
            item.name,
            _kind_label(item),
            item.date_modified.strftime("%Y-%m-%d %H:%M"),
        )
    return table


def _item_payload(item: Item) -> dict[str, Any]:
    return item.model_dump(mode="json")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="studyshelf")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def cli(ctx: click.Context, quiet: bool) -> None:
    """StudyShelf keeps your study PDFs, notes, and whiteboards organized in folders."""
    ctx.ensure_object(dict)["quiet"] = quiet


@cli.command("ls")
@click.argument("folder", required=False)
@click.option("--sort", "sort_order", type=click.Choice(_SORT_CHOICES), help="Listing order.")
@click.option("--json", "json_output", is_flag=True, help="Emit the listing as JSON.")
@click.pass_context
def list_items(
    ctx: click.Context,
    folder: Optional[str],
    sort_order: Optional[str],
    json_output: bool,
) -> None:
    """List the contents of FOLDER (the library root by default)."""
    shelf = _open_shelf(ctx, json_output=json_output)
    folder_id = _resolve_folder(shelf, folder)
    if folder_id is not None:
        shelf.navigate_to_folder(folder_id)
    if sort_order:
        shelf.change_sort_order(sort_order)

    items = shelf.current_items()
    if json_output:
        console.print_json(
            data={
                "path": shelf.current_path,
                "sort": shelf.sort_order.value,
                "items": [_item_payload(item) for item in items],
            }
        )
        return

    title = f"{_breadcrumb(shelf.current_path)} ({shelf.sort_order.label})"
    if not items:
        _emit_message(f"[yellow]{title} is empty.[/yellow]", quiet=_quiet(ctx))
        return
    _emit_message(_items_table(items, title=title), quiet=_quiet(ctx))


@cli.command()
@click.option("--name", type=str, help="Folder name (defaults to 'New Folder').")
@click.option("--parent", type=str, help="Parent folder id or prefix ('/' for the root).")
@click.pass_context
def mkdir(ctx: click.Context, name: Optional[str], parent: Optional[str]) -> None:
    """Create a folder."""
    shelf = _open_shelf(ctx)
    folder = shelf.create_folder(name, parent_id=_resolve_folder(shelf, parent))
    _emit_message(f"[green]Created folder {folder.name} ({folder.id}).[/green]", quiet=_quiet(ctx))


@cli.command()
@click.argument("kind", type=click.Choice(["note", "whiteboard"]))
@click.option("--name", type=str, help="Document name; the type suffix is added when missing.")
@click.option("--parent", type=str, help="Parent folder id or prefix ('/' for the root).")
@click.option("--text", type=str, default="", help="Initial note body.")
@click.pass_context
def new(
    ctx: click.Context,
    kind: str,
    name: Optional[str],
    parent: Optional[str],
    text: str,
) -> None:
    """Create an empty note or whiteboard."""
    shelf = _open_shelf(ctx)
    parent_id = _resolve_folder(shelf, parent)
    if kind == "note":
        item = shelf.create_note(name, parent_id=parent_id, text=text)
    else:
        item = shelf.create_whiteboard(name, parent_id=parent_id)
    _emit_message(f"[green]Created {kind} {item.name} ({item.id}).[/green]", quiet=_quiet(ctx))


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", type=str, help="Display name (defaults to the file name).")
@click.option("--parent", type=str, help="Parent folder id or prefix ('/' for the root).")
@click.option(
    "--as",
    "content_kind",
    type=click.Choice(["pdf", "note"]),
    default="pdf",
    show_default=True,
    help="Content type of the imported document.",
)
@click.pass_context
def import_document(
    ctx: click.Context,
    path: Path,
    name: Optional[str],
    parent: Optional[str],
    content_kind: str,
) -> None:
    """Copy the document at PATH into the library."""
    shelf = _open_shelf(ctx)
    item = shelf.import_document(
        path,
        name=name,
        parent_id=_resolve_folder(shelf, parent),
        content_kind="note" if content_kind == "note" else "pdf",
    )
    if item is None:
        raise click.ClickException(f"Unable to read {path}.")
    _emit_message(f"[green]Imported {item.name} ({item.id}).[/green]", quiet=_quiet(ctx))


@cli.command()
@click.argument("item")
@click.argument("name")
@click.pass_context
def rename(ctx: click.Context, item: str, name: str) -> None:
    """Rename ITEM to NAME."""
    shelf = _open_shelf(ctx)
    target = _resolve_item(shelf, item)
    renamed = shelf.rename_item(target.id, name)
    if renamed is None:
        _emit_message(f"[yellow]Name of {target.name} left unchanged.[/yellow]", quiet=_quiet(ctx))
        return
    _emit_message(f"[green]Renamed to {renamed.name}.[/green]", quiet=_quiet(ctx))


@cli.command()
@click.argument("item")
@click.argument("destination")
@click.pass_context
def mv(ctx: click.Context, item: str, destination: str) -> None:
    """Move ITEM into the DESTINATION folder ('/' for the root)."""
    shelf = _open_shelf(ctx)
    target = _resolve_item(shelf, item)
    parent_id = _resolve_folder(shelf, destination)
    try:
        moved = shelf.move_item(target.id, parent_id)
    except (InvalidParentError, ItemNotFoundError) as exc:
        raise click.ClickException(str(exc)) from exc
    _emit_message(
        f"[green]Moved {moved.name} to {_breadcrumb(shelf.path_to(moved.id)[:-1])}.[/green]",
        quiet=_quiet(ctx),
    )


@cli.command()
@click.argument("items", nargs=-1, required=True)
@click.option("--json", "json_output", is_flag=True, help="Emit the removed items as JSON.")
@click.pass_context
def rm(ctx: click.Context, items: tuple[str, ...], json_output: bool) -> None:
    """Delete ITEMS from the library.

    Children of a deleted folder are kept but become unreachable from the
    tree unless cascading deletes are enabled in the configuration.
    """
    shelf = _open_shelf(ctx, json_output=json_output)
    targets = [_resolve_item(shelf, token).id for token in items]
    removed = shelf.delete_items(targets)
    if json_output:
        console.print_json(data={"removed": [_item_payload(item) for item in removed]})
        return
    for item in removed:
        _emit_message(f"Removed {item.name} ({item.id[:8]})", quiet=_quiet(ctx))


@cli.command()
@click.argument("item")
@click.pass_context
def path(ctx: click.Context, item: str) -> None:
    """Print the breadcrumb path of ITEM."""
    shelf = _open_shelf(ctx)
    target = _resolve_item(shelf, item)
    console.print(_breadcrumb(shelf.path_to(target.id)))


@cli.command("open")
@click.argument("item")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the document content to this file instead of stdout.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit errors as JSON.")
@click.pass_context
def open_document(
    ctx: click.Context,
    item: str,
    output: Optional[Path],
    json_output: bool,
) -> None:
    """Fetch the content of the document ITEM."""
    shelf = _open_shelf(ctx, json_output=json_output)
    target = _resolve_item(shelf, item)
    document = shelf.open_document(target.id)
    if document is None:
        _handle_cli_error(
            f"Content for {target.name} is unavailable.",
            code="unavailable",
            json_output=json_output,
            details={"id": target.id, "kind": target.kind},
        )
        return

    if output is not None:
        output.write_bytes(document.data)
        _emit_message(
            f"[green]Wrote {len(document.data)} bytes of {document.title} to {output}.[/green]",
            quiet=_quiet(ctx),
        )
        return
    click.get_binary_stream("stdout").write(document.data)


@cli.command()
@click.argument("item")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def save(ctx: click.Context, item: str, source: Path) -> None:
    """Replace the content of the document ITEM with the bytes of SOURCE."""
    shelf = _open_shelf(ctx)
    target = _resolve_item(shelf, item)
    if not shelf.save_document(target.id, source.read_bytes()):
        raise click.ClickException(f"Unable to save {target.name}.")


@cli.command()
@click.argument("item")
@click.argument("minutes", type=click.FloatRange(min=0))
@click.pass_context
def study(ctx: click.Context, item: str, minutes: float) -> None:
    """Log MINUTES of study time on the document ITEM."""
    shelf = _open_shelf(ctx)
    target = _resolve_item(shelf, item)
    record = shelf.record_study_time(target.id, minutes)
    if record is None:
        raise click.ClickException(f"{target.name} is not a document.")
    _emit_message(
        f"[green]{target.name}: {record.progress:.0%} after "
        f"{record.total_time_spent:g} minutes.[/green]",
        quiet=_quiet(ctx),
    )


@cli.command()
@click.option("--limit", type=int, help="Number of documents to show (defaults to configuration).")
@click.option("--json", "json_output", is_flag=True, help="Emit progress as JSON.")
@click.pass_context
def progress(ctx: click.Context, limit: Optional[int], json_output: bool) -> None:
    """Show the most recently studied documents."""
    shelf = _open_shelf(ctx, json_output=json_output)
    config: ShelfConfig = ctx.obj["config"]
    pairs = shelf.recent_progress(limit if limit is not None else config.cli.progress_limit)

    if json_output:
        console.print_json(
            data={
                "progress": [
                    {"item": _item_payload(item), "record": record.model_dump(mode="json")}
                    for item, record in pairs
                ]
            }
        )
        return

    if not pairs:
        _emit_message("[yellow]No study sessions recorded yet.[/yellow]", quiet=_quiet(ctx))
        return

    table = Table(title="Study progress")
    table.add_column("Document")
    table.add_column("Progress", justify="right")
    table.add_column("Minutes", justify="right")
    table.add_column("Last studied")
    for item, record in pairs:
        table.add_row(
            item.name,
            f"{record.progress:.0%}",
            f"{record.total_time_spent:g}",
            record.last_studied.strftime("%Y-%m-%d %H:%M"),
        )
    _emit_message(table, quiet=_quiet(ctx))


@cli.command()
@click.pass_context
def recent(ctx: click.Context) -> None:
    """Show recently opened documents."""
    shelf = _open_shelf(ctx)
    items = shelf.recent_items()
    if not items:
        _emit_message("[yellow]No recently opened documents.[/yellow]", quiet=_quiet(ctx))
        return
    _emit_message(_items_table(items, title="Recent documents"), quiet=_quiet(ctx))


@cli.command()
@click.argument("query", required=False, default="")
@click.option("--kind", type=click.Choice(sorted(_KIND_FILTERS)), help="Restrict to one kind.")
@click.option("--json", "json_output", is_flag=True, help="Emit matches as JSON.")
@click.pass_context
def find(ctx: click.Context, query: str, kind: Optional[str], json_output: bool) -> None:
    """Search item names across the library, orphaned items included."""
    shelf = _open_shelf(ctx, json_output=json_output)
    item_kind, content_kind = _KIND_FILTERS[kind] if kind else (None, None)
    matches = shelf.find_items(query, kind=item_kind, content_kind=content_kind)
    if json_output:
        console.print_json(data={"items": [_item_payload(item) for item in matches]})
        return
    if not matches:
        _emit_message(f"[yellow]No items match '{query}'.[/yellow]", quiet=_quiet(ctx))
        return
    _emit_message(_items_table(matches, title=f"Matches for '{query}'"), quiet=_quiet(ctx))


@cli.command()
@click.pass_context
def doctor(ctx: click.Context) -> None:
    """Report orphaned items and other tree inconsistencies."""
    shelf = _open_shelf(ctx)
    problems = shelf.integrity_report()
    if not problems:
        _emit_message("[green]Library tree is consistent.[/green]", quiet=_quiet(ctx))
        return
    _emit_message(f"[yellow]{len(problems)} problem(s) found:[/yellow]", quiet=_quiet(ctx))
    for problem in problems:
        _emit_message(f"  - {problem}", quiet=_quiet(ctx))


@cli.group()
def config() -> None:
    """Manage StudyShelf configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        resolved = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(resolved.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = ConfigManager()
    manager.ensure_exists()
    before = manager.read_text().splitlines()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    diff = list(
        difflib.unified_diff(
            before,
            manager.read_text().splitlines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    changed = [line for line in diff if line[:1] in "+-" and "Last updated:" not in line]
    if len(changed) <= 2 and all(line.startswith(("+++", "---")) for line in changed):
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session."""
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=ShelfConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
