"""
FileHub CLI - Typer entry point

Commands: init-db, add, list, tag, index, bulk, search, job create/get/advance
"""

import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import List, Optional

import typer

from filehub._core import FileHub
from filehub.config import FileHubConfig
from filehub.result import Result
from filehub.services.catalog import FileFilters
from filehub.services.ingestion import FileDraft

app = typer.Typer(help="Ingest, tag, index and search workspace files.")
job_app = typer.Typer(help="Bulk sync jobs.")
app.add_typer(job_app, name="job")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@app.callback()
def main(
    ctx: typer.Context,
    database_url: Optional[str] = typer.Option(
        None, "--database-url", help="Overrides FILEHUB_DATABASE_URL."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING, format=LOG_FORMAT)
    cfg = FileHubConfig()
    if database_url:
        cfg.database_url = database_url
    ctx.obj = cfg


def _run(ctx: typer.Context, operation) -> None:
    """Run ``operation(hub)`` against an initialized hub and print its result."""

    async def _go() -> Result:
        async with FileHub.from_config(ctx.obj) as hub:
            return await operation(hub)

    result = asyncio.run(_go())
    if not result.ok:
        typer.echo(json.dumps([i.to_dict() for i in result.issues], indent=2), err=True)
        sys.exit(1)
    typer.echo(json.dumps(_jsonable(result.value), ensure_ascii=False, indent=2))


def _jsonable(value):
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def _parse_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise typer.BadParameter(f"not a valid id: {raw}")


@app.command("init-db")
def init_db(ctx: typer.Context) -> None:
    """Create the vector extension and all tables."""

    async def _go() -> None:
        hub = FileHub.from_config(ctx.obj)
        try:
            await hub.init()
        finally:
            await hub.close()

    asyncio.run(_go())
    typer.echo("ok")


@app.command()
def add(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    workspace: str = typer.Option(..., "--workspace", "-w"),
    source: Optional[str] = typer.Option(None, "--source"),
    channel: Optional[str] = typer.Option(None, "--channel"),
    user: Optional[str] = typer.Option(None, "--user", "-u"),
) -> None:
    """Add a local file to a workspace."""
    draft = FileDraft(
        name=path.name,
        content=path.read_bytes(),
        channel_id=channel,
        uploaded_by=user,
    )
    _run(ctx, lambda hub: hub.add_file(workspace, draft, source_id=source))


@app.command("list")
def list_files(
    ctx: typer.Context,
    workspace: str = typer.Option(..., "--workspace", "-w"),
    tag: Optional[List[str]] = typer.Option(None, "--tag"),
    mime: Optional[str] = typer.Option(None, "--mime"),
    channel: Optional[str] = typer.Option(None, "--channel"),
    limit: int = typer.Option(50, "--limit", "-l"),
) -> None:
    """List files, newest first."""
    filters = FileFilters(tags=tag or None, mime_type=mime, channel_id=channel)
    _run(ctx, lambda hub: hub.list_files(workspace, filters, limit))


@app.command()
def tag(ctx: typer.Context, file_id: str) -> None:
    """Tag one file."""
    fid = _parse_id(file_id)
    _run(ctx, lambda hub: hub.tag_file(fid))


@app.command()
def index(ctx: typer.Context, file_id: str) -> None:
    """Embed one file and mark it indexed."""
    fid = _parse_id(file_id)
    _run(ctx, lambda hub: hub.index_file(fid))


@app.command()
def bulk(
    ctx: typer.Context,
    workspace: str = typer.Option(..., "--workspace", "-w"),
) -> None:
    """Tag all untagged files, then index all unindexed files."""
    _run(ctx, lambda hub: hub.bulk_tag_and_index(workspace))


@app.command()
def search(
    ctx: typer.Context,
    query: str,
    workspace: str = typer.Option(..., "--workspace", "-w"),
    tag: Optional[List[str]] = typer.Option(None, "--tag"),
    mime: Optional[str] = typer.Option(None, "--mime"),
    channel: Optional[str] = typer.Option(None, "--channel"),
    limit: int = typer.Option(50, "--limit", "-l"),
) -> None:
    """Semantic search with text fallback."""
    filters = FileFilters(tags=tag or None, mime_type=mime, channel_id=channel)
    _run(ctx, lambda hub: hub.search(workspace, query, filters, limit))


@job_app.command("create")
def job_create(
    ctx: typer.Context,
    workspace: str = typer.Option(..., "--workspace", "-w"),
    user: str = typer.Option(..., "--user", "-u"),
) -> None:
    """Create a sync job."""
    _run(ctx, lambda hub: hub.create_job(workspace, user))


@job_app.command("get")
def job_get(ctx: typer.Context, job_id: str) -> None:
    """Show a sync job."""
    jid = _parse_id(job_id)
    _run(ctx, lambda hub: hub.get_job(jid))


@job_app.command("advance")
def job_advance(ctx: typer.Context, job_id: str, status: str) -> None:
    """Move a sync job to a later status."""
    jid = _parse_id(job_id)
    _run(ctx, lambda hub: hub.advance_job(jid, status))


if __name__ == "__main__":
    app()
