# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Static file server with composable access guards.

Run with:
  python -m sfs
"""

__version__ = "1.9.0"
