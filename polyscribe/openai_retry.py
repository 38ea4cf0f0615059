"""
polyscribe/openai_retry.py
===========================
OpenAI retry helper — PolyScribe

Wraps ``client.chat.completions.create`` with exponential back-off on
transient failures (429 rate limits, 5xx responses, timeouts and
connection errors). Non-retryable errors are re-raised immediately.

Usage::

    from polyscribe.openai_retry import chat_completions_with_retry

    response = chat_completions_with_retry(
        client,
        policy=RetryPolicy(max_retries=2),
        model="gpt-4o-mini",
        messages=[...],
    )

The translation engine calls this from a worker thread
(``asyncio.to_thread``) so the back-off sleeps never block the event loop.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger("polyscribe.openai_retry")

_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})
_RETRYABLE_ERROR_TYPES: frozenset[str] = frozenset(
    {"RateLimitError", "APITimeoutError", "APIConnectionError", "InternalServerError"}
)


@dataclass(frozen=True)
class RetryPolicy:
    """Back-off schedule; total attempts = max_retries + 1."""

    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 8.0
    backoff_factor: float = 2.0


DEFAULT_POLICY = RetryPolicy()


def is_retryable(exc: Exception) -> bool:
    """True if ``exc`` looks like a transient OpenAI / transport failure."""
    if type(exc).__name__ in _RETRYABLE_ERROR_TYPES:
        return True
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status in _RETRYABLE_STATUS_CODES
    return False


def call_with_retry(
    fn: Callable[..., Any],
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> Any:
    """Call ``fn(**kwargs)``, retrying transient failures per ``policy``."""
    delay = policy.base_delay
    attempts = policy.max_retries + 1

    for attempt in range(1, attempts + 1):
        try:
            return fn(**kwargs)
        except Exception as exc:
            if not is_retryable(exc):
                logger.warning("OpenAI call failed with non-retryable error: %s", exc)
                raise
            if attempt == attempts:
                logger.error("OpenAI call failed after %d attempts: %s", attempts, exc)
                raise
            logger.warning(
                "OpenAI call failed (attempt %d/%d): %s — retrying in %.1fs",
                attempt, attempts, exc, delay,
            )
            sleep(delay)
            delay = min(delay * policy.backoff_factor, policy.max_delay)

    raise RuntimeError("unreachable")  # pragma: no cover


def chat_completions_with_retry(
    client: Any,
    policy: RetryPolicy = DEFAULT_POLICY,
    **kwargs: Any,
) -> Any:
    """``client.chat.completions.create(**kwargs)`` with retry."""
    return call_with_retry(client.chat.completions.create, policy=policy, **kwargs)
