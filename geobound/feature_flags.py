# Geobound
# Copyright (c) 2025 Kevin Wyjad
# Licensed under the Geobound Non-Commercial Public License v1.0.
# See the LICENSE file in the project root for details.

"""Environment switches read at call time."""

from __future__ import annotations

import logging
import os

LOGGER = logging.getLogger(__name__)

_ON = frozenset({"1", "true", "yes", "on"})


def env_flag(name: str) -> bool:
    """True when *name* is set to ``1``/``true``/``yes``/``on`` (any case)."""

    return os.getenv(name, "").strip().lower() in _ON


def getenv_number(name: str, default: float, *, cast=float):
    """Return ``cast(os.environ[name])`` or *default* when unset or invalid."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        LOGGER.warning("Invalid %s=%r; using default %s", name, raw, default)
        return default


def skip_sleep() -> bool:
    # planned sleeps are still recorded in diagnostics
    return env_flag("GEOBOUND_TEST_NO_SLEEP")


__all__ = ["env_flag", "getenv_number", "skip_sleep"]
