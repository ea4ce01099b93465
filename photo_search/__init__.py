"""Semantic photo search.

Describes images with a vision model, stores the descriptions as embeddings
in Qdrant, and answers free-text questions by nearest-neighbor search.
"""

from __future__ import annotations

__version__ = '0.3.0'
