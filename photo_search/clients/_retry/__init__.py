"""Retry classification, retry logging and circuit breakers for both gateways.

Private submodule - not exported by the package.

HTTPX Exception Hierarchy
=========================

Reference for which exceptions to retry vs propagate::

    httpx.HTTPError (base)
    ├── httpx.RequestError
    │   ├── httpx.TransportError
    │   │   ├── httpx.TimeoutException   ← RETRY (all subclasses)
    │   │   ├── httpx.NetworkError       ← RETRY (all subclasses)
    │   │   ├── httpx.ProtocolError
    │   │   │   ├── LocalProtocolError   ← PROPAGATE (our bug)
    │   │   │   └── RemoteProtocolError  ← RETRY (server sent invalid HTTP)
    │   │   ├── ProxyError               ← PROPAGATE (config error)
    │   │   └── UnsupportedProtocol      ← PROPAGATE (config error)
    │   ├── DecodingError                ← PROPAGATE (response malformed)
    │   └── TooManyRedirects             ← PROPAGATE
    ├── httpx.HTTPStatusError            ← Handle per-client
    └── httpx.InvalidURL                 ← PROPAGATE (config error)

Gateway Notes
-------------
- **Model provider (raw httpx)**: HTTPStatusError 429 and 5xx are retried too;
  local servers answer 500 while a model is still loading.
- **Qdrant REST (collection management)**: httpx failures arrive wrapped in
  ResponseHandlingException (see exc.source); status errors as
  UnexpectedResponse.
- **Qdrant gRPC (probe, upsert, search)**: grpc.aio.AioRpcError, classified
  by status code (UNAVAILABLE, DEADLINE_EXCEEDED, RESOURCE_EXHAUSTED).

Retries run inside the circuit breaker; both sit inside the adapter's
LibraryBoundary so callers only see domain errors (including
``circuitbreaker.CircuitBreakerError`` once translated).
"""

from __future__ import annotations

from photo_search.clients._retry.httpx_errors import is_retryable_httpx_error
from photo_search.clients._retry.model import is_retryable_model_error, log_model_retry, model_breaker
from photo_search.clients._retry.qdrant import is_retryable_qdrant_error, log_qdrant_retry, qdrant_breaker

__all__ = [
    'is_retryable_httpx_error',
    'is_retryable_model_error',
    'is_retryable_qdrant_error',
    'log_model_retry',
    'log_qdrant_retry',
    'model_breaker',
    'qdrant_breaker',
]
