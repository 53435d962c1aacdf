"""`tika-d2` command line interface.

Each command opens a session (launching a server from a JAR or connecting
to `--server-url`), runs one client operation and prints the result.
Any library error ends the process with exit code 1.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from adapters.tika_client import TikaClient
from cli.doctor import app as doctor_app
from cli.ui_components import build_detector_tree, build_mime_table, build_parser_tree
from core.config import AppSettings
from core.domain.errors import TikaError
from core.domain.models import Translator
from core.services.session import SessionHooks, SessionRequest, open_session

app = typer.Typer(
    no_args_is_help=True,
    help="Command line interface for Apache Tika Server.",
)
app.add_typer(doctor_app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


@dataclass
class CliState:
    request: SessionRequest
    settings: AppSettings


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, show_path=False)],
        force=True,
    )


def _dump_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


def _run(ctx: typer.Context, action: str, operation: Callable[[TikaClient], Awaitable[Any]]) -> Any:
    state: CliState = ctx.obj
    hooks = SessionHooks(status=lambda msg: _err_console.print(f"[dim]{escape(msg)}[/dim]"))

    async def _go() -> Any:
        async with open_session(state.request, state.settings, hooks=hooks) as client:
            return await operation(client)

    try:
        return asyncio.run(_go())
    except TikaError as exc:
        _err_console.print(f"[red]tika {action} error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


_FILE_ARGUMENT = typer.Argument(
    ...,
    exists=True,
    dir_okay=False,
    readable=True,
    help="Path to the file to send.",
)


@app.callback()
def main(
    ctx: typer.Context,
    server_url: Optional[str] = typer.Option(
        None, "--server-url", help="URL of a running Tika server."
    ),
    server_jar: Optional[Path] = typer.Option(
        None,
        "--server-jar",
        help="Path to the Tika server JAR. Starts a new server and ignores --server-url.",
    ),
    download_version: Optional[str] = typer.Option(
        None,
        "--download-version",
        help=(
            "Server JAR version to download (to --server-jar, or to the working "
            "directory). Nothing is fetched if a valid JAR is already there."
        ),
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    try:
        settings = AppSettings()
    except ValidationError as exc:
        problems = "; ".join(
            f"TIKA_D2_{'_'.join(str(part) for part in error['loc']).upper()}: {error['msg']}"
            for error in exc.errors()
        )
        _err_console.print(f"[red]invalid configuration:[/red] {escape(problems)}")
        raise typer.Exit(code=1) from exc
    _configure_logging("DEBUG" if verbose else settings.log_level)

    request = SessionRequest.from_settings(settings)
    if server_url:
        request.server_url = server_url
    if server_jar:
        request.server_jar = server_jar
    request.download_version = download_version
    ctx.obj = CliState(request=request, settings=settings)


@app.command()
def parse(
    ctx: typer.Context,
    filename: Path = _FILE_ARGUMENT,
    recursive: bool = typer.Option(
        False, "--recursive", "-r", help="One block of text per embedded document."
    ),
) -> None:
    """Extract the text of a document."""

    async def op(client: TikaClient) -> str:
        with filename.open("rb") as fh:
            if recursive:
                return "\n".join(await client.parse_recursive(fh))
            return await client.parse(fh)

    typer.echo(_run(ctx, "parse", op))


@app.command()
def detect(ctx: typer.Context, filename: Path = _FILE_ARGUMENT) -> None:
    """Detect the MIME type of a document."""

    async def op(client: TikaClient) -> str:
        with filename.open("rb") as fh:
            return await client.detect(fh)

    typer.echo(_run(ctx, "detect", op))


@app.command()
def language(ctx: typer.Context, filename: Path = _FILE_ARGUMENT) -> None:
    """Identify the language of a document."""

    async def op(client: TikaClient) -> str:
        with filename.open("rb") as fh:
            return await client.language(fh)

    typer.echo(_run(ctx, "language", op))


@app.command()
def meta(
    ctx: typer.Context,
    filename: Path = _FILE_ARGUMENT,
    field: Optional[str] = typer.Option(
        None, "--field", help="Only print this metadata field. Not combinable with --recursive."
    ),
    recursive: bool = typer.Option(
        False, "--recursive", "-r", help="Metadata of every embedded document, as JSON."
    ),
) -> None:
    """Extract the metadata of a document."""

    if field and recursive:
        raise typer.BadParameter("--field and --recursive cannot be combined")

    async def op(client: TikaClient) -> str:
        with filename.open("rb") as fh:
            if field:
                return await client.meta_field(fh, field)
            if recursive:
                return _dump_json(await client.meta_recursive(fh))
            return await client.meta(fh)

    typer.echo(_run(ctx, "meta", op))


@app.command()
def translate(
    ctx: typer.Context,
    filename: Path = _FILE_ARGUMENT,
    src: str = typer.Option(..., "--src", help="Source language code."),
    dst: str = typer.Option(..., "--dst", help="Target language code."),
    translator: str = typer.Option(
        Translator.GOOGLE.name.lower(),
        "--translator",
        help="One of: " + ", ".join(t.name.lower() for t in Translator) + ", or a Java class name.",
    ),
) -> None:
    """Translate a document (the translator must be configured server-side)."""

    resolved: Translator | str = Translator.__members__.get(translator.upper(), translator)

    async def op(client: TikaClient) -> str:
        with filename.open("rb") as fh:
            return await client.translate(fh, resolved, src, dst)

    typer.echo(_run(ctx, "translate", op))


@app.command()
def version(ctx: typer.Context) -> None:
    """Print the server version."""

    typer.echo(_run(ctx, "version", lambda client: client.version()))


@app.command()
def parsers(
    ctx: typer.Context,
    tree: bool = typer.Option(False, "--tree", help="Render a tree instead of JSON."),
) -> None:
    """List the parsers available on the server."""

    root = _run(ctx, "parsers", lambda client: client.parsers())
    if tree:
        _console.print(build_parser_tree(root, show_types=True))
    else:
        typer.echo(_dump_json(root.model_dump(by_alias=True)))


@app.command()
def detectors(
    ctx: typer.Context,
    tree: bool = typer.Option(False, "--tree", help="Render a tree instead of JSON."),
) -> None:
    """List the detectors available on the server."""

    root = _run(ctx, "detectors", lambda client: client.detectors())
    if tree:
        _console.print(build_detector_tree(root))
    else:
        typer.echo(_dump_json(root.model_dump()))


@app.command()
def mimetypes(
    ctx: typer.Context,
    table: bool = typer.Option(False, "--table", help="Render a table instead of JSON."),
) -> None:
    """List the MIME types known to the server."""

    registry = _run(ctx, "mimetypes", lambda client: client.mime_types())
    if table:
        _console.print(build_mime_table(registry))
    else:
        typer.echo(_dump_json({name: info.model_dump() for name, info in registry.items()}))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
