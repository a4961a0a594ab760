"""
Helpers shared by the route handlers: URL and skills normalisation, and the
cascading account deletion.
"""

from __future__ import annotations

import concurrent.futures
import logging
import re
from typing import Callable, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from socialnet.db import DbClient

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(value: str) -> str:
    """
    Canonical https form of a user-entered URL: scheme added or upgraded,
    credentials and `www.` dropped, host lower-cased, default port, tracking
    params and trailing slash removed, query sorted.
    """
    value = value.strip()
    if value.startswith("//"):
        value = "https:" + value
    elif not _SCHEME_RE.match(value):
        value = "https://" + value

    parts = urlsplit(value)
    scheme = parts.scheme.lower()
    if scheme == "http":
        scheme = "https"
    host = (parts.hostname or "").lower()
    if not host:
        raise ValueError(f"Invalid URL: {value!r}")
    if host.startswith("www.") and "." in host[4:]:
        host = host[4:]

    try:
        port = parts.port
    except ValueError as exc:
        raise ValueError(f"Invalid URL: {value!r}") from exc
    netloc = host
    if port and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{host}:{port}"

    path = re.sub(r"/{2,}", "/", parts.path).rstrip("/")
    query = urlencode(
        sorted(
            (k, v)
            for k, v in parse_qsl(parts.query, keep_blank_values=True)
            if not k.startswith("utm_")
        )
    )
    return urlunsplit((scheme, netloc, path, query, parts.fragment))


def normalize_optional_url(value: Optional[str]) -> str:
    return normalize_url(value) if value else ""


def parse_skills(value: Union[list, str, None]) -> list[str]:
    """Accept a list as-is, or split a comma-delimited string into trimmed entries."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [skill.strip() for skill in value.split(",") if skill.strip()]


class AccountDeletionError(RuntimeError):
    """Raised when one or more steps of the cascading delete failed."""

    def __init__(self, failed_steps: list[str]):
        super().__init__(f"Account deletion incomplete, failed: {', '.join(failed_steps)}")
        self.failed_steps = failed_steps


def delete_account(db: DbClient, user_id: str, profile_id: str) -> dict:
    """
    Delete a user's posts, profile and user record as one concurrent batch.

    The steps are independent and nothing is rolled back: if a step fails,
    the others may still have been applied.
    """
    steps: dict[str, Callable[[], object]] = {
        "posts": lambda: db.posts.delete_by_profile(profile_id),
        "profile": lambda: db.profiles.delete_for_user(user_id),
        "user": lambda: db.users.delete(user_id),
    }
    results: dict = {}
    failed: list[str] = []
    with concurrent.futures.ThreadPoolExecutor(max_workers=len(steps)) as executor:
        futures = {executor.submit(fn): name for name, fn in steps.items()}
        for future in concurrent.futures.as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except Exception:
                logger.exception("[%s] Account deletion step %r failed", user_id, name)
                failed.append(name)
    if failed:
        raise AccountDeletionError(sorted(failed))
    logger.info(
        "[%s] Account deleted (%s posts removed)", user_id, results.get("posts", 0)
    )
    return results
