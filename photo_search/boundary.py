"""Exception translation at third-party library call boundaries.

Adapters wrap every call into qdrant-client, httpx, pyexiftool and Pillow in a
``LibraryBoundary`` so that services only ever see ``PhotoSearchError``
subclasses. The original exception is preserved via chaining.

Usage::

    _boundary = LibraryBoundary(VectorStoreError)

    @_boundary
    async def find_by_id(...): ...

    with _boundary:
        image = Image.open(path)
"""

from __future__ import annotations

__all__ = ['LibraryBoundary']

import functools
import inspect
from collections.abc import Callable
from types import TracebackType
from typing import Any, Self, TypeVar, cast

_F = TypeVar('_F', bound=Callable[..., object])

# Exception subclasses that drive iteration protocols and must never be translated
_PASSTHROUGH = (StopIteration, StopAsyncIteration, GeneratorExit)


class LibraryBoundary:
    """Translate exceptions from library calls into a target exception type.

    Exceptions that already are the target type pass through unchanged, as do
    non-``Exception`` base exceptions (``KeyboardInterrupt``, ``CancelledError``).

    Args:
        target: Exception type to translate into. Must accept a string message.
    """

    def __init__(self, target: type[Exception]) -> None:
        self._target = target

    def __call__(self, func: _F) -> _F:
        """Decorate a sync or async function."""
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with self:
                    return await func(*args, **kwargs)

            return cast(_F, async_wrapper)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with self:
                return func(*args, **kwargs)

        return cast(_F, sync_wrapper)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_val is None or isinstance(exc_val, self._target):
            return
        if not isinstance(exc_val, Exception) or isinstance(exc_val, _PASSTHROUGH):
            return
        message = f'{type(exc_val).__name__}: {exc_val}'
        raise self._target(message).with_traceback(exc_tb) from exc_val
