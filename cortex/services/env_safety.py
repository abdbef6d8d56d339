"""Process environment checks run before HTTP clients are created."""
from __future__ import annotations

import os
from pathlib import Path

from loguru import logger


def _keylog_path_usable(raw_path: str) -> bool:
    path = Path(raw_path)
    if not path.parent.exists():
        return False
    try:
        # Opening in append mode never truncates an existing key log.
        with open(path, "a", encoding="utf-8"):
            pass
    except OSError:
        return False
    return True


def sanitize_ssl_keylogfile() -> bool:
    """Drop SSLKEYLOGFILE when it points somewhere unwritable.

    httpx and the OpenAI SDK build an SSL context per client and crash when
    the key log cannot be opened. Returns True when the variable was removed.
    """
    raw_path = os.getenv("SSLKEYLOGFILE", "").strip()
    if not raw_path or _keylog_path_usable(raw_path):
        return False

    os.environ.pop("SSLKEYLOGFILE", None)
    logger.warning(f"Ignoring unusable SSLKEYLOGFILE: {raw_path}")
    return True
