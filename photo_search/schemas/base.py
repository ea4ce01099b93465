"""Base class for every photo search model."""

from __future__ import annotations

import pydantic

__all__ = [
    'StrictModel',
]


class StrictModel(pydantic.BaseModel):
    """Immutable model that rejects unknown fields and implicit coercion.

    Records, results and settings are passed between the pipelines and the
    adapters; freezing them means no stage can alter what another produced.
    ``Settings`` relaxes ``strict`` because its values arrive as strings.
    """

    model_config = pydantic.ConfigDict(
        extra='forbid',
        strict=True,
        frozen=True,
    )
