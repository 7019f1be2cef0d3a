from __future__ import annotations

import re
from urllib.parse import unquote

SESSIONS_PREFIX = "sessions/"
_DOWNLOAD_URL_PATH_RE = re.compile(r"/o/([^?]+)")


def session_media_prefix(session_code: str) -> str:
    return f"{SESSIONS_PREFIX}{session_code}/media/"


def extract_storage_path(url: str | None) -> str | None:
    """Resolve a stored media reference to a bucket path.

    Download URLs carry the url-encoded path after ``/o/``; bare
    ``sessions/...`` paths are returned unchanged.
    """
    if not url:
        return None
    candidate = url.strip()
    if candidate.startswith(SESSIONS_PREFIX):
        return candidate
    match = _DOWNLOAD_URL_PATH_RE.search(unquote(candidate))
    if match is None:
        return None
    return match.group(1) or None
