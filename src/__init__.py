"""Learnboard Backend.

Learning tracking backend: employees log learning activities and see
statistics for themselves, their team and the organization.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
