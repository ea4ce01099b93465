"""Qdrant-specific retry and circuit breaker helpers.

Private module - import from _retry package.

The gateway prefers gRPC, so data calls fail with ``grpc.aio.AioRpcError``;
collection management still goes over REST and fails with qdrant-client's
HTTP exceptions. Both transports are classified here.
"""

from __future__ import annotations

import logging

import circuitbreaker
import grpc
import qdrant_client.http.exceptions
import tenacity

from photo_search.clients._retry.httpx_errors import is_retryable_httpx_error

__all__ = [
    'is_retryable_qdrant_error',
    'log_qdrant_retry',
    'qdrant_breaker',
]

logger = logging.getLogger(__name__)

# REST status codes worth retrying. 500 is left out: Qdrant returns it for
# malformed requests as well as for real outages.
RETRYABLE_STATUS_CODES = frozenset({408, 502, 503, 504})

# gRPC equivalents: server restarting, overloaded, or too slow
RETRYABLE_GRPC_CODES = frozenset(
    {
        grpc.StatusCode.UNAVAILABLE,
        grpc.StatusCode.DEADLINE_EXCEEDED,
        grpc.StatusCode.RESOURCE_EXHAUSTED,
    }
)

# Qdrant is local infrastructure: trip early, probe again after 30s
QDRANT_FAILURE_THRESHOLD = 5
QDRANT_RECOVERY_TIMEOUT = 30


def is_retryable_qdrant_error(exc: BaseException) -> bool:
    """Check if an exception from qdrant-client is transient.

    - ``grpc.RpcError``: by status code
    - ``ResponseHandlingException``: REST transport failure, judged by ``exc.source``
    - ``UnexpectedResponse``: REST status error, judged by ``exc.status_code``
    """
    match exc:
        case grpc.RpcError() if hasattr(exc, 'code'):
            return exc.code() in RETRYABLE_GRPC_CODES
        case qdrant_client.http.exceptions.ResponseHandlingException():
            return is_retryable_httpx_error(exc.source)
        case qdrant_client.http.exceptions.UnexpectedResponse():
            return exc.status_code in RETRYABLE_STATUS_CODES
        case _:
            return False


def log_qdrant_retry(retry_state: tenacity.RetryCallState) -> None:
    """Log which gateway operation is being retried and why."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if exc is None:
        return

    if isinstance(exc, grpc.RpcError) and hasattr(exc, 'code'):
        reason = f'gRPC {exc.code().name}'
    elif isinstance(exc, qdrant_client.http.exceptions.ResponseHandlingException) and exc.source:
        reason = f'{type(exc.source).__name__}: {exc.source}'
    else:
        reason = f'{type(exc).__name__}: {exc}'

    operation = getattr(retry_state.fn, '__name__', 'call')
    logger.warning(f'[RETRY] Qdrant {operation} attempt {retry_state.attempt_number} failed: {reason}')


def _counts_toward_breaker(thrown_type: type, thrown_value: BaseException) -> bool:  # noqa: ARG001
    return is_retryable_qdrant_error(thrown_value)


qdrant_breaker = circuitbreaker.CircuitBreaker(
    failure_threshold=QDRANT_FAILURE_THRESHOLD,
    recovery_timeout=QDRANT_RECOVERY_TIMEOUT,
    expected_exception=_counts_toward_breaker,
    name='qdrant',
)
