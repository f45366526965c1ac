# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for Learnboard.

This package contains domain services that encapsulate business logic.

Domains:
    stats: Learning statistics for employees, teams and the organization.
"""
