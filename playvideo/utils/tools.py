"""Lookup of external tools on PATH."""

from __future__ import annotations

import shutil


def tool_available(name: str) -> bool:
    """Return True if `name` resolves to an executable on PATH."""
    return shutil.which(name) is not None
