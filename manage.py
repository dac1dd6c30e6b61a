# manage.py
from datetime import datetime, timedelta, timezone

import typer
import uvicorn

from mindspace.config import settings
from mindspace.crud.game_room import cancel_stale_rooms
from mindspace.database.base import engine, SessionLocal
from mindspace.database.models import Base
from mindspace.main import create_app

# Create CLI app for database and server management
cli = typer.Typer()
app = create_app()


@cli.command()
def runserver(
        host: str = settings.HOST,
        port: int = settings.PORT,
        reload: bool = settings.RELOAD,
):
    """Run the FastAPI development server"""
    Base.metadata.create_all(bind=engine)
    uvicorn.run(
        "manage:app",
        host=host,
        port=port,
        reload=reload
    )


@cli.command()
def initdb():
    """Create all database tables"""
    Base.metadata.create_all(bind=engine)
    typer.echo("Database tables created")


@cli.command()
def cancelstalerooms(
        minutes: int = typer.Option(settings.STALE_ROOM_MINUTES, help="Cancel active rooms older than this"),
):
    """Cancel waiting and in-progress rooms nobody finished"""
    older_than = datetime.now(timezone.utc) - timedelta(minutes=minutes)
    db = SessionLocal()
    try:
        cancelled = cancel_stale_rooms(db, older_than)
    finally:
        db.close()
    typer.echo(f"Cancelled {len(cancelled)} stale rooms")


if __name__ == "__main__":
    cli()
