# Geobound
# Copyright (c) 2025 Kevin Wyjad
# Licensed under the Geobound Non-Commercial Public License v1.0.
# See the LICENSE file in the project root for details.

"""Province → city boundary crawler for the DataV areas API."""

__all__ = [
    "cli",
    "config",
    "feature_flags",
    "hierarchy",
    "http",
    "ledger",
    "logs",
    "report",
    "storage",
    "walker",
]

__version__ = "0.1.0"
