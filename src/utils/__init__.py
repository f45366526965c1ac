# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for Learnboard.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware date and datetime operations
"""

from src.utils.datetime import (
    date_range,
    ensure_utc,
    format_iso,
    today_in,
    utc_now,
    window_start,
)
from src.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "today_in",
    "window_start",
    "date_range",
    "format_iso",
]
