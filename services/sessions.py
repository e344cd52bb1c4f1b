"""Helpers for minting mock-interview session tokens."""
from __future__ import annotations

import time
import uuid


def new_token() -> str:
    """Return ``session_<ns timestamp>_<random suffix>``; collisions are practically impossible."""

    return f"session_{time.time_ns()}_{uuid.uuid4().hex[:9]}"


def completed_variant(token: str) -> str:
    """Token used when a completed session has to be stored as a fresh record."""

    return f"{token}_completed_{int(time.time() * 1000)}"
