"""
L4 Execution — HTTP fetches.

Fail fast: one attempt, no retry, no backoff. Every failure surfaces as
``NetworkFailure``.
"""

from __future__ import annotations

import json
import logging
import shutil
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from zinstall import __version__
from zinstall.core.services.installer.errors import NetworkFailure

logger = logging.getLogger(__name__)

USER_AGENT = f"zinstall/{__version__}"


def _open(url: str, *, timeout: int, accept: str | None = None):
    headers = {"User-Agent": USER_AGENT}
    if accept:
        headers["Accept"] = accept
    req = urllib.request.Request(url, headers=headers)
    try:
        return urllib.request.urlopen(req, timeout=timeout)
    except urllib.error.HTTPError as e:
        raise NetworkFailure(url, f"HTTP {e.code}") from e
    except (urllib.error.URLError, OSError) as e:
        raise NetworkFailure(url, str(getattr(e, "reason", e))) from e


def fetch_bytes(url: str, *, timeout: int = 30) -> bytes:
    """GET *url* and return the body."""
    logger.debug("GET %s", url)
    with _open(url, timeout=timeout) as resp:
        try:
            return resp.read()
        except OSError as e:
            raise NetworkFailure(url, str(e)) from e


def fetch_json(url: str, *, timeout: int = 30) -> Any:
    """GET *url* and decode a JSON body."""
    logger.debug("GET %s", url)
    with _open(url, timeout=timeout, accept="application/vnd.github+json") as resp:
        try:
            return json.loads(resp.read().decode("utf-8"))
        except (OSError, ValueError) as e:
            raise NetworkFailure(url, f"bad response: {e}") from e


def download_to(url: str, dest: Path, *, timeout: int = 60) -> Path:
    """Stream *url* into *dest*."""
    logger.debug("Downloading %s → %s", url, dest)
    dest.parent.mkdir(parents=True, exist_ok=True)
    with _open(url, timeout=timeout) as resp:
        try:
            with open(dest, "wb") as f:
                shutil.copyfileobj(resp, f)
        except OSError as e:
            raise NetworkFailure(url, str(e)) from e
    return dest
