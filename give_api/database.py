"""
Database connection management for the API.

The GiveWP database belongs to another system, so it is only ever opened
read-only (SQLite URI ``mode=ro``).  ``get_db`` opens one connection per
request and closes it after the response is sent.

Settings come from the ApiContext that create_app() stores on
``app.state.context``; nothing here is module-level mutable state.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from fastapi import Depends, Request

from give_api.errors import ServiceUnavailable
from give_api.kinds import ResourceKind
from give_api.registry import REGISTRY, ResourceSpec
from give_store.config import AppConfig
from give_store.queries import GiveStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiContext:
    """Process-wide, read-only configuration built once at startup."""

    config: AppConfig
    registry: Mapping[ResourceKind, ResourceSpec] = field(default_factory=lambda: REGISTRY)


def get_context(request: Request) -> ApiContext:
    return request.app.state.context


def open_readonly(db_path: Path) -> sqlite3.Connection:
    """Open a read-only connection with row access by column name."""
    uri = f"file:{db_path}?mode=ro"
    conn = sqlite3.connect(uri, uri=True, check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


def get_db(context: ApiContext = Depends(get_context)) -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: yield a read-only connection, close on exit.

    Raises ServiceUnavailable (503) when the database file is missing or
    cannot be opened.
    """
    db_path = context.config.db_path
    if not db_path.exists():
        logger.error("GiveWP database not found at %s", db_path)
        raise ServiceUnavailable("GiveWP plugin is not active.")
    try:
        conn = open_readonly(db_path)
    except sqlite3.Error:
        logger.error("Could not open GiveWP database at %s", db_path, exc_info=True)
        raise ServiceUnavailable("GiveWP plugin is not active.")
    try:
        yield conn
    finally:
        conn.close()


def get_store(
    conn: sqlite3.Connection = Depends(get_db),
    context: ApiContext = Depends(get_context),
) -> GiveStore:
    return GiveStore(conn, context.config)
