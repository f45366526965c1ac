# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

Alembic-style migrations for the directory, learning event log and
stats projection tables, applied by ``runner.run_migrations``.
"""
