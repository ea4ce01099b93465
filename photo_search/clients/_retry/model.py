"""Retry and circuit breaker helpers for OpenAI-compatible model providers.

Private module - import from _retry package.
"""

from __future__ import annotations

import logging

import circuitbreaker
import httpx
import tenacity

from photo_search.clients._retry.httpx_errors import is_retryable_httpx_error

__all__ = [
    'is_retryable_model_error',
    'log_model_retry',
    'model_breaker',
]

logger = logging.getLogger(__name__)

# HTTP status codes that are transient and worth retrying
# 429: Rate limit exceeded
# 500: Internal server error (local servers return this while loading a model)
# 502: Bad gateway
# 503: Service unavailable
# 504: Gateway timeout
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Circuit breaker - opens after consecutive failures, hard fails until recovery
MODEL_FAILURE_THRESHOLD = 10
MODEL_RECOVERY_TIMEOUT = 60


def is_retryable_model_error(exc: BaseException) -> bool:
    """Check if exception is a retryable transient provider error.

    Retries on:
    - httpx transport errors (timeout, network issues)
    - HTTP 429 (rate limit)
    - HTTP 5xx gateway and server errors
    """
    if is_retryable_httpx_error(exc):
        return True

    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code in RETRYABLE_STATUS_CODES


def log_model_retry(retry_state: tenacity.RetryCallState) -> None:
    """Log provider retry attempt with exception details."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if exc is None:
        return

    exc_msg = str(exc)
    if isinstance(exc, httpx.HTTPStatusError):
        exc_msg = f'HTTP {exc.response.status_code}: {exc_msg}'

    operation = getattr(retry_state.fn, '__name__', 'call')
    logger.warning(
        f'[RETRY] Model {operation} attempt {retry_state.attempt_number} failed: {type(exc).__name__}: {exc_msg}'
    )


def _model_circuit_filter(thrown_type: type, thrown_value: BaseException) -> bool:  # noqa: ARG001
    """Only count retryable errors toward circuit breaker."""
    return is_retryable_model_error(thrown_value)


model_breaker = circuitbreaker.CircuitBreaker(
    failure_threshold=MODEL_FAILURE_THRESHOLD,
    recovery_timeout=MODEL_RECOVERY_TIMEOUT,
    expected_exception=_model_circuit_filter,
    name='model',
)
