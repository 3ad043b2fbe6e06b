# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Salted password key derivation (argon2id, raw hashes)
- Credential store loading/saving from a JSON file
"""
