# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

Example:
    from src.infrastructure.database import init_database, get_session

    await init_database(settings)

    async with get_session() as session:
        result = await session.execute(select(Team))
"""

from src.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    clear_worker_connections,
    close_database,
    get_session,
    get_sessionmaker,
    get_worker_session,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "clear_worker_connections",
    "close_database",
    "get_session",
    "get_sessionmaker",
    "get_worker_session",
    "init_database",
]
