"""SQLModel database engine and session management.

The engine is built by the composition root (``main.create_app`` or the CLI)
and handed to the services that need it; nothing here opens a connection at
import time.
"""

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for the given URL."""
    kwargs = {}
    # SQLite needs check_same_thread=False; PostgreSQL does not
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory databases live per connection, so share a single one
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    return create_engine(database_url, echo=echo, **kwargs)


def create_db_and_tables(engine: Engine):
    """Create all tables. Called on startup."""
    # Register table metadata
    from trigger_router.models import Order  # noqa: F401

    SQLModel.metadata.create_all(engine)
