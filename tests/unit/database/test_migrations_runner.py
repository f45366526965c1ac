# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the migration runner's planning helpers."""

import pytest

from src.infrastructure.database.migrations.runner import (
    MIGRATIONS,
    get_pending_migrations,
    load_migration,
)


class TestGetPendingMigrations:
    """Tests for get_pending_migrations."""

    def test_fresh_database_gets_everything(self) -> None:
        assert get_pending_migrations(None) == MIGRATIONS

    def test_up_to_date_database(self) -> None:
        assert get_pending_migrations(MIGRATIONS[-1]) == []

    def test_stops_at_target(self) -> None:
        assert get_pending_migrations(None, MIGRATIONS[0]) == MIGRATIONS[:1]

    def test_unknown_current_version(self) -> None:
        assert get_pending_migrations("999_from_the_future") == []

    def test_unknown_target(self) -> None:
        assert get_pending_migrations(None, "999_missing") == []


class TestLoadMigration:
    """Tests for load_migration."""

    @pytest.mark.parametrize("revision", MIGRATIONS)
    def test_every_listed_migration_loads(self, revision: str) -> None:
        module = load_migration(revision)

        assert module.revision == revision
        assert callable(module.upgrade)

    def test_missing_module(self) -> None:
        with pytest.raises(ImportError):
            load_migration("999_missing")
