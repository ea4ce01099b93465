"""Transport-level httpx failures shared by both gateways.

Private module - import from _retry package.
"""

from __future__ import annotations

import httpx

__all__ = [
    'is_retryable_httpx_error',
]

# Connection refused/reset, timeouts of every phase, and garbled responses.
# LocalProtocolError, ProxyError and UnsupportedProtocol are configuration
# or client bugs and stay out.
_TRANSIENT = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


def is_retryable_httpx_error(exc: BaseException | None) -> bool:
    """True for httpx errors that a later attempt can plausibly fix.

    Accepts None so callers can pass ``ResponseHandlingException.source``
    directly.
    """
    return isinstance(exc, _TRANSIENT)
