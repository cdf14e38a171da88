"""CLI commands for the ground truth curator."""

import json
import logging
import re
import sys
from pathlib import Path

import click

from ground_truth_curator.config import settings
from ground_truth_curator.exceptions import CuratorError


class SecretRedactingFilter(logging.Filter):
    """Filter to redact sensitive information from logs."""

    # Patterns for common secrets
    SECRET_PATTERNS = [
        (re.compile(r"(api[_-]?key[\s:=]+)[\w-]{20,}", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(token[\s:=]+)[\w-]{20,}", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(password[\s:=]+)\S+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(secret[\s:=]+)\S+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(bearer\s+)[\w-]+", re.IGNORECASE), r"\1[REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact secrets from log messages."""
        if isinstance(record.msg, str):
            for pattern, replacement in self.SECRET_PATTERNS:
                record.msg = pattern.sub(replacement, record.msg)
        return True


# Configure logging with secret redaction
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logging.getLogger().addFilter(SecretRedactingFilter())
logger = logging.getLogger(__name__)

KIND_OPTION = click.option(
    "--kind",
    "-k",
    type=click.Choice(["entry", "document"]),
    default="entry",
    show_default=True,
    help="Record kind of the dataset",
)


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _open(kind: str, dataset: str | None = None):
    """Open a review session, optionally on a named dataset."""
    from ground_truth_curator.datasets.session import open_session

    session = open_session(kind, resume=dataset is None)
    if dataset is not None:
        if session.named_store is None:
            _fail(ValueError("--dataset requires STORAGE_BACKEND=local"))
        if not session.load(dataset):
            _fail(ValueError(f"Dataset not found: {dataset}"))
    return session


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """Ground Truth Curator CLI."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@cli.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@KIND_OPTION
@click.option("--username", "-u", required=True, help="Curator who owns the dataset")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "jsonl", "csv"]),
    help="File format (defaults to the file extension)",
)
def import_file(file: Path, kind: str, username: str, fmt: str | None) -> None:
    """Import a JSON, JSONL or CSV file into an empty dataset."""
    from ground_truth_curator.codec import format_from_filename

    session = _open(kind)
    try:
        count = session.import_text(
            file.read_text(encoding="utf-8"), fmt or format_from_filename(file.name), username
        )
    except (CuratorError, ValueError) as e:
        _fail(e)

    click.echo(f"Imported {count} {kind} records from {file.name}")
    if session.dataset_name:
        click.echo(f"  Dataset: {session.dataset_name}")


@cli.command()
@KIND_OPTION
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "jsonl", "csv"]),
    default="json",
    show_default=True,
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (defaults to the standard export filename)",
)
@click.option("--dataset", "-d", help="Named dataset (local store only)")
def export(kind: str, fmt: str, output: Path | None, dataset: str | None) -> None:
    """Export the dataset without internal identifiers."""
    session = _open(kind, dataset)
    try:
        filename, content = session.export(fmt)
    except CuratorError as e:
        _fail(e)

    path = output or Path(filename)
    path.write_text(content, encoding="utf-8")
    click.echo(f"Exported {len(session)} records to {path}")


@cli.command(name="list")
@KIND_OPTION
@click.option("--search", "-s", default="", help="Case-insensitive search term")
@click.option(
    "--status",
    type=click.Choice(["all", "approved", "pending"]),
    default="all",
    show_default=True,
)
@click.option("--sort", type=click.Choice(["none", "asc", "desc"]), default="none")
@click.option("--limit", "-l", type=int, default=50, help="Maximum records to show")
@click.option("--dataset", "-d", help="Named dataset (local store only)")
def list_records(
    kind: str, search: str, status: str, sort: str, limit: int, dataset: str | None
) -> None:
    """List records matching a search and approval filter."""
    session = _open(kind, dataset)
    view = session.view(search, status, sort)

    if not view:
        click.echo("No records found.")
        return

    click.echo(f"Showing {min(len(view), limit)} of {len(view)} matching records:\n")
    for record in view[:limit]:
        mark = "[x]" if record.approved else "[ ]"
        click.echo(f"{mark} {record.identity}  {record.business_id}")
        summary = record.question if kind == "entry" else record.text
        click.echo(f"      {summary[:80]}")
        if record.approved:
            click.echo(f"      approved by {record.approved_by} at {record.date_approved}")


@cli.command()
@click.argument("identity")
@KIND_OPTION
@click.option("--approver", "-a", help="Approver name (defaults to the dataset owner)")
@click.option("--revoke", is_flag=True, help="Withdraw the approval instead")
@click.option("--dataset", "-d", help="Named dataset (local store only)")
def approve(identity: str, kind: str, approver: str | None, revoke: bool, dataset: str | None) -> None:
    """Approve a record by its internal identity."""
    session = _open(kind, dataset)
    try:
        changed = session.revoke(identity) if revoke else session.approve(identity, approver)
    except CuratorError as e:
        _fail(e)

    if not changed:
        _fail(ValueError(f"Record not found: {identity}"))

    record = session.get(identity)
    if revoke:
        click.echo(f"Approval revoked for {record.business_id}")
    else:
        click.echo(f"Approved {record.business_id} as {record.approved_by}")


@cli.command()
@KIND_OPTION
@click.option("--dataset", "-d", help="Named dataset (local store only)")
def stats(kind: str, dataset: str | None) -> None:
    """Show approval progress."""
    session = _open(kind, dataset)
    result = session.stats()

    click.echo(f"\nDataset: {session.dataset_name or '(none)'}")
    click.echo(f"  Owner: {session.username or '(none)'}")
    click.echo(f"  Total: {result.total}")
    click.echo(f"  Approved: {result.approved}")
    click.echo(f"  Pending: {result.pending}")
    click.echo(f"  Approval rate: {result.approval_rate}%")


@cli.command()
@KIND_OPTION
@click.confirmation_option(prompt="Delete the stored dataset? Export it first if you need it.")
def clear(kind: str) -> None:
    """Delete the stored dataset."""
    session = _open(kind)
    try:
        session.clear()
    except CuratorError as e:
        _fail(e)
    click.echo("Dataset cleared.")


@cli.command()
@click.argument(
    "output",
    type=click.Path(dir_okay=False, path_type=Path),
    default="sample_ground_truth.json",
)
def sample(output: Path) -> None:
    """Write a sample ground truth file to try the import with."""
    from ground_truth_curator.records.sample import sample_dataset

    entries = sample_dataset()
    output.write_text(json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8")
    click.echo(f"Wrote {len(entries)} sample entries to {output}")
    click.echo(f"  Import with: curator import {output} --username <name>")


# =============================================================================
# Named datasets (local store)
# =============================================================================


@cli.group()
def datasets() -> None:
    """Manage named datasets in the local store."""
    pass


def _named_store(kind: str):
    from ground_truth_curator.stores.base import NamedDatasetStore
    from ground_truth_curator.stores.factory import build_store

    store = build_store(kind)
    if not isinstance(store, NamedDatasetStore):
        _fail(ValueError(f"Backend '{settings.storage_backend}' has no named datasets; use STORAGE_BACKEND=local"))
    return store


@datasets.command(name="list")
@KIND_OPTION
def datasets_list(kind: str) -> None:
    """List stored datasets."""
    store = _named_store(kind)
    infos = store.list_datasets()
    if not infos:
        click.echo("No datasets stored.")
        return

    active = store.get_active_name()
    for info in infos:
        marker = "*" if info.name == active else " "
        click.echo(f"{marker} {info.name}  ({info.record_count} records, modified {info.last_modified})")


@datasets.command(name="rename")
@click.argument("old_name")
@click.argument("new_name")
@KIND_OPTION
def datasets_rename(old_name: str, new_name: str, kind: str) -> None:
    """Rename a stored dataset."""
    session = _open(kind, old_name)
    try:
        renamed = session.rename(new_name)
    except CuratorError as e:
        _fail(e)
    if not renamed:
        _fail(ValueError("New name must be non-empty and different"))
    click.echo(f"Dataset renamed to \"{session.dataset_name}\"")


@datasets.command(name="use")
@click.argument("name")
@KIND_OPTION
def datasets_use(name: str, kind: str) -> None:
    """Make a stored dataset the active one."""
    session = _open(kind, name)
    click.echo(f"Active dataset: {session.dataset_name} ({len(session)} records)")


@datasets.command(name="delete")
@click.argument("name")
@KIND_OPTION
@click.confirmation_option(prompt="Delete this dataset?")
def datasets_delete(name: str, kind: str) -> None:
    """Delete a stored dataset."""
    store = _named_store(kind)
    if not store.exists(name):
        _fail(ValueError(f"Dataset not found: {name}"))
    try:
        store.delete(name)
    except CuratorError as e:
        _fail(e)
    click.echo(f"Deleted dataset: {name}")


# =============================================================================
# Servers
# =============================================================================


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", "-p", type=int, default=8000, show_default=True, help="Port to run on")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API server."""
    import uvicorn

    click.echo("Starting curator API...")
    click.echo(f"  Storage backend: {settings.storage_backend}")
    click.echo(f"  Docs: http://{host}:{port}/docs")
    uvicorn.run("ground_truth_curator.main:app", host=host, port=port, reload=reload)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
