from functools import lru_cache
from typing import Iterator

from ..config import get_settings
from .schema import SCHEMA_SQL, INDEXES_SQL, render_schema
from .client import get_supabase_client
from .postgres import (
    PostgresRepository,
    get_postgres_connection,
    get_database_url,
    check_table_exists,
)
from .memory import MemoryRepository
from .repository import Repository


@lru_cache()
def get_memory_repository() -> MemoryRepository:
    """Process-wide in-memory store (REPOSITORY_BACKEND=memory)."""
    return MemoryRepository()


def get_repository() -> Iterator[Repository]:
    """
    Request-scoped repository (FastAPI dependency).
    Postgres gets one connection per request, closed afterwards.
    """
    if get_settings().repository_backend == "memory":
        yield get_memory_repository()
        return

    repo = PostgresRepository(get_postgres_connection())
    try:
        yield repo
    finally:
        repo.close()


__all__ = [
    "SCHEMA_SQL",
    "INDEXES_SQL",
    "render_schema",
    "get_supabase_client",
    "PostgresRepository",
    "MemoryRepository",
    "Repository",
    "get_postgres_connection",
    "get_database_url",
    "check_table_exists",
    "get_memory_repository",
    "get_repository",
]
