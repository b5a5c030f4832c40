"""CLI entry point using Typer — 数据库结构同步与 RBAC 种子数据"""
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from sqlalchemy.exc import SQLAlchemyError

from hotel_manage.config import Settings, get_settings
from hotel_manage.database import Database
from hotel_manage.exceptions import HotelManageError
from hotel_manage.logging_config import configure_logging
from hotel_manage.services.rbac_seed import load_catalogue, seed_rbac

app = typer.Typer(
    name="hotel-manage",
    help="Hotel management schema and RBAC maintenance commands.",
    add_completion=False,
)

console = Console()

URL_OPTION = typer.Option(None, "--url", help="Database URL (defaults to DATABASE_URL / POSTGRES_* settings)")
YES_OPTION = typer.Option(False, "--yes", "-y", help="Skip confirmation prompts")


def _print_target(settings: Settings, database: Database) -> None:
    url = database.url
    console.print("\n[bold]📋 Current Configuration:[/bold]")
    console.print(f"   Host: {url.host or '-'}")
    console.print(f"   Port: {url.port or '-'}")
    console.print(f"   Database: {url.database or '-'}")
    console.print(f"   Schema: {settings.POSTGRES_SCHEMA or '-'}")
    console.print(f"   User: {url.username or '-'}")


def _confirm(message: str, yes: bool) -> None:
    if yes:
        return
    if not typer.confirm(message, default=False):
        console.print("[yellow]❌ Operation cancelled by user[/yellow]")
        raise typer.Exit(code=0)


def _run_sync(title: str, url: Optional[str], yes: bool, force: bool = False, alter: bool = False,
              double_confirm: bool = False) -> None:
    settings = get_settings()
    configure_logging(settings)
    database = Database(url=url, settings=settings)
    try:
        console.print(f"[bold]🔄 {title}[/bold]")
        _print_target(settings, database)
        _confirm("Is this the correct database and schema?", yes)
        if double_confirm:
            _confirm("⚠️  Are you ABSOLUTELY sure? This will DELETE ALL DATA!", yes)

        database.sync(force=force, alter=alter)
        console.print("[green]✅ Database synchronized successfully[/green]")
    except (SQLAlchemyError, HotelManageError, OSError) as e:
        console.print(f"[red]❌ Database sync failed:[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        database.close()


@app.command("create-db")
def create_db(url: Optional[str] = URL_OPTION, yes: bool = YES_OPTION):
    """Create tables that do not exist yet."""
    _run_sync("DATABASE CREATION (safe sync)", url, yes)


@app.command("alter-db")
def alter_db(url: Optional[str] = URL_OPTION, yes: bool = YES_OPTION):
    """Create missing tables and add missing columns to existing ones."""
    _run_sync("DATABASE ALTER (add missing columns)", url, yes, alter=True)


@app.command("sync-db")
def sync_db(url: Optional[str] = URL_OPTION, yes: bool = YES_OPTION):
    """Drop and recreate all tables."""
    console.print("[bold red]⚠️  This will DROP and RECREATE all tables![/bold red]")
    _run_sync("DESTRUCTIVE DATABASE SYNC", url, yes, force=True, double_confirm=True)


@app.command("seed")
def seed(
    url: Optional[str] = URL_OPTION,
    file: Optional[Path] = typer.Option(
        None,
        "--file",
        exists=True,
        dir_okay=False,
        help="YAML catalogue of roles, permissions and role_permissions",
    ),
):
    """Seed roles, permissions and role-permission grants (idempotent)."""
    settings = get_settings()
    configure_logging(settings)
    database = Database(url=url, settings=settings)
    try:
        catalogue = load_catalogue(file) if file else None
        with database.session_scope() as session:
            stats = seed_rbac(session, catalogue)
        console.print(
            f"[green]✅ Seeded[/green] roles={stats['roles']} "
            f"permissions={stats['permissions']} mappings={stats['mappings']}"
        )
    except (SQLAlchemyError, HotelManageError, OSError) as e:
        console.print(f"[red]❌ Seed failed:[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        database.close()


if __name__ == "__main__":
    app()
