import asyncio
import typer
import logging
import sys
if sys.platform == "win32":
    # asyncpg не работает с ProactorEventLoop, который в Windows по умолчанию
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
from sqlalchemy.exc import SQLAlchemyError

from sensory_drive import create_drive_client
from sensory_drive import logging as drive_logging
from sensory_drive.db.base import Base
from sensory_drive.exceptions import DriveClientError
from sensory_drive.utils.cli_utils import get_rich_console, describe_quota


app = typer.Typer(help="CLI for sensory-drive management.")
logger = logging.getLogger(__name__)
console = get_rich_console()


@app.callback()
def main(log_level: str = typer.Option(None, "--log-level", help="Overrides LOG_LEVEL.")):
    drive_logging.configure(log_level)


@app.command()
def init():
    """
    Creates database tables and ensures the MinIO bucket exists.
    """
    console.rule("[bold cyan]Service Initialization[/bold cyan]")

    async def _init():
        client = create_drive_client()
        try:
            with console.status("Creating database tables...", spinner="dots"):
                try:
                    async with client._engine.begin() as conn:
                        await conn.run_sync(Base.metadata.create_all)
                    console.log("[bold green]✔[/bold green] Database tables created successfully.")
                except SQLAlchemyError as e:
                    console.log(f"[bold red]✖[/bold red] Database initialization FAILED: {e}")
                    raise typer.Exit(code=1)

            with console.status("Initializing MinIO storage bucket...", spinner="dots"):
                try:
                    await client.minio.check_connection()
                    console.log(f"[bold green]✔[/bold green] MinIO bucket '{client.minio.bucket}' is ready.")
                except DriveClientError as e:
                    console.log(f"[bold red]✖[/bold red] MinIO storage initialization FAILED: {e}")
                    raise typer.Exit(code=1)
        finally:
            await client.aclose()

    asyncio.run(_init())
    console.print("\n[bold green]✅ All services initialized successfully![/bold green]")


@app.command()
def check():
    """Checks connectivity to all external services (database, MinIO)."""
    console.rule("[bold cyan]Connection Check[/bold cyan]")

    async def _check() -> bool:
        client = create_drive_client()
        try:
            statuses = await client.check_connections()
        finally:
            await client.aclose()

        pg_status = statuses.get("postgres", "unknown error")
        if pg_status == "ok":
            console.print("[bold green]✔[/bold green] Database connection: OK")
        else:
            console.print(f"[bold red]✖[/bold red] Database connection: FAILED ({pg_status})")

        minio_status = statuses.get("minio", "unknown error")
        if minio_status == "ok":
            console.print(f"[bold green]✔[/bold green] MinIO connection: OK (bucket: '{client.minio.bucket}')")
        else:
            console.print(f"[bold red]✖[/bold red] MinIO connection: FAILED ({minio_status})")
        return pg_status == "ok" and minio_status == "ok"

    if not asyncio.run(_check()):
        raise typer.Exit(code=1)


@app.command("set-quota")
def set_quota(
    email: str = typer.Argument(..., help="User email."),
    limit: int = typer.Argument(..., help="New storage limit in bytes."),
):
    """Sets a user's storage limit."""

    async def _set():
        client = create_drive_client()
        try:
            return await client.set_storage_limit(email, limit)
        finally:
            await client.aclose()

    try:
        status = asyncio.run(_set())
    except DriveClientError as e:
        console.print(f"[bold red]✖[/bold red] {e}")
        raise typer.Exit(code=1)
    console.print(
        f"[bold green]✔[/bold green] {email}: {describe_quota(status.storage_used, status.storage_limit)}"
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
):
    """Runs the HTTP API."""
    import uvicorn

    uvicorn.run("sensory_drive.server.main:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    app()
