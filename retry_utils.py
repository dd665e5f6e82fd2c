"""
retry_utils.py - tenacity helpers for wup's network reads.
"""

from __future__ import annotations

import http.client
import logging
import urllib.error
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar, cast

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

NETWORK_ERRORS = (urllib.error.URLError, http.client.HTTPException, TimeoutError, ConnectionError)


def typed_retry(*args: Any, **kwargs: Any) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Keep the decorated function's signature visible to type checkers."""
    return cast(Callable[[Callable[P, R]], Callable[P, R]], retry(*args, **kwargs))


def network_retry(attempts: int = 3) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Retry transient network failures with exponential backoff.

    Malformed URLs (``ValueError``, including ``http.client.InvalidURL``)
    fail at once. The last error is re-raised unchanged so callers can
    handle ``NETWORK_ERRORS`` themselves.
    """
    return typed_retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(NETWORK_ERRORS) & retry_if_not_exception_type(ValueError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
