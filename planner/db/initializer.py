from __future__ import annotations

from sqlalchemy import text

from planner.db import models  # noqa: F401  (registers tables on Base.metadata)
from planner.db.base import Base
from planner.db.session import engine


def create_database_schema() -> None:
    """Create core tables if they do not exist."""

    Base.metadata.create_all(bind=engine)

    if engine.dialect.name == "postgresql":
        with engine.begin() as connection:
            connection.execute(text("SET timezone TO 'UTC';"))


def drop_database_schema() -> None:
    Base.metadata.drop_all(bind=engine)


__all__ = ["create_database_schema", "drop_database_schema"]
