"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import typer
from rich.console import Console

from adapters.tika_client import TikaClient
from cli.ui_components import build_doctor_table
from core.config import AppSettings, write_user_env_vars
from core.domain.errors import TikaError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_server(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with TikaClient(url, settings=settings) as client:
            version = await client.version()
        return True, version.strip()
    except TikaError as exc:
        return False, str(exc)


def _check_java(java: str) -> tuple[bool, str]:
    found = shutil.which(java)
    if found:
        return True, found
    return False, f"{java!r} not found on PATH"


def _check_jar(jar: Path | None) -> tuple[str, str]:
    if jar is None:
        return "OPTIONAL", "No JAR configured -> a running server URL is required"
    if jar.is_file():
        return "OK", str(jar)
    return "FAIL", f"{jar} does not exist"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()
    table = build_doctor_table()

    ok_java, detail_java = _check_java(settings.java_path)
    table.add_row("Java runtime", "OK" if ok_java else "FAIL", detail_java)

    status_jar, detail_jar = _check_jar(settings.server_jar)
    table.add_row("Server JAR", status_jar, detail_jar)

    ok_server = False
    if settings.server_url:
        ok_server, detail_server = asyncio.run(_check_server(settings.server_url, settings))
        table.add_row("Server URL", "OK" if ok_server else "FAIL", detail_server)
    else:
        table.add_row("Server URL", "OPTIONAL", "Not set -> a JAR will be launched")

    _console.print(table)

    if not ok_java and settings.server_jar is not None:
        _console.print(
            "\n[yellow]Note:[/yellow] Launching a JAR needs Java; set TIKA_D2_JAVA_PATH "
            "or install a JRE."
        )
    if settings.server_url and not ok_server:
        _console.print(
            "\n[yellow]Note:[/yellow] The configured server is unreachable; check that it "
            "is running or use --server-jar."
        )


@app.command(name="configure")
def configure() -> None:
    """Interactive setup (stores config in the user config .env)."""

    server_url = typer.prompt("Server URL (empty to launch a JAR)", default="", show_default=False).strip()
    server_jar = typer.prompt("Server JAR path (empty for none)", default="", show_default=False).strip()
    java_path = typer.prompt("Java runtime", default="java", show_default=True).strip()

    if not server_url and not server_jar:
        raise typer.BadParameter("a server URL or a JAR path is required")

    values = {"TIKA_D2_JAVA_PATH": java_path}
    if server_url:
        values["TIKA_D2_SERVER_URL"] = server_url
    if server_jar:
        values["TIKA_D2_SERVER_JAR"] = str(Path(server_jar).expanduser().resolve())

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved config to:[/green] {env_path}")
