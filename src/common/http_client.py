"""Shared HTTP helpers used by the repository transport and POM reader.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. This module is dependency-light and can be
safely imported by both resolution/* and maven/* without cycles.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def new_session() -> requests.Session:
    """Create a requests session carrying the tool's User-Agent."""
    session = requests.Session()
    session.headers.update({"User-Agent": Constants.USER_AGENT})
    return session


def safe_get(
    url: str,
    *,
    context: str,
    session: Optional[requests.Session] = None,
    timeout: Optional[int] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g., "checksum", "pom").
        session: Optional session to issue the request through.
        timeout: Seconds before giving up; defaults to Constants.REQUEST_TIMEOUT.
        **kwargs: Passed through to requests.get.

    Returns:
        requests.Response: The HTTP response object.

    Raises:
        requests.RequestException: the request timed out or could not connect.
            Callers turn it into TransportError or skip to the next repository;
            the CLI decides the exit code.
    """
    safe_target = safe_url(url)
    getter = session.get if session is not None else requests.get
    timeout = timeout or Constants.REQUEST_TIMEOUT
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = getter(url, timeout=timeout, **kwargs)
        except requests.Timeout:
            logger.debug("%s request timed out after %s seconds", context, timeout)
            raise
        except requests.RequestException as exc:  # includes ConnectionError
            logger.debug("%s connection error: %s", context, exc)
            raise
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if res.status_code == 200 else "non_2xx",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context
                )
            )
        return res
