"""Declarative base and portable column types."""

from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Insert, Integer, Table
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import DeclarativeBase

# BIGINT identity on PostgreSQL, INTEGER (rowid alias) on SQLite so autoincrement works.
BigIntId = BigInteger().with_variant(Integer(), "sqlite")

# JSONB on PostgreSQL, generic JSON elsewhere.
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def dialect_insert(db: AsyncSession, table: Table) -> Insert:
    """``INSERT`` for the session's dialect, so ``on_conflict_*`` works on PostgreSQL and SQLite."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(table)
    return pg_insert(table)
