"""OpenAI-compatible model client.

Thin wrapper around the ``/chat/completions`` and ``/embeddings`` endpoints
shared by OpenAI, Ollama, LM Studio, vLLM and similar servers. Owns the
prompts; the services only pass data.

Uses native async httpx. Concurrency controlled via semaphore. Transient
failures are retried behind a circuit breaker, and every httpx error or
malformed response leaves this module as ModelError.

API Reference: https://platform.openai.com/docs/api-reference
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
import tenacity

from photo_search.boundary import LibraryBoundary
from photo_search.clients import _retry
from photo_search.concurrency import ConcurrencyTracker
from photo_search.errors import ModelError

__all__ = [
    'OpenAIClient',
]

logger = logging.getLogger(__name__)

_boundary = LibraryBoundary(ModelError)

type JsonObject = Mapping[str, Any]

DESCRIBE_SYSTEM_PROMPT = (
    'You are a traveler immersed in the scene in front of you. Describe it with attention to '
    'cultural, geographical and sensory detail, conveying the atmosphere and local character '
    'of the place.'
)
DESCRIBE_STYLE_PROMPTS = (
    'Keep the description concise and engaging, at most 2-3 sentences.',
    "Be confident. Do not hedge with words like 'likely' or 'perhaps'.",
    "Do not refer to the picture itself. Avoid phrases such as 'This image shows' or 'In this photo'; "
    'describe the scene directly.',
)
SUMMARIZE_SYSTEM_PROMPT = 'You are a helpful assistant answering the question using the provided options.'


class OpenAIClient:
    """Low-level client for an OpenAI-compatible model server.

    Defaults target a local Ollama server.
    """

    DEFAULT_BASE_URL = 'http://localhost:11434/v1'

    DEFAULT_MAX_CONCURRENT = 4

    # Vision models on local hardware can take tens of seconds per image
    DEFAULT_TIMEOUT_S = 120.0
    DEFAULT_MAX_CONNECTIONS = 16
    DEFAULT_KEEPALIVE_EXPIRY = 30

    MAX_TOKENS = 512
    SUMMARIZE_TEMPERATURE = 0.2

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        chat_model: str,
        image_model: str,
        embedding_model: str,
        api_key: str = '',
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        keepalive_expiry: float = DEFAULT_KEEPALIVE_EXPIRY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            base_url: API root including the version segment (e.g. ``.../v1``).
            chat_model: Text model for summarization.
            image_model: Multimodal model for image descriptions.
            embedding_model: Embedding model.
            api_key: Bearer token. Local servers usually need none.
            max_concurrent: Max concurrent API requests (semaphore limit).
            timeout_s: Request timeout in seconds.
            max_connections: Max simultaneous HTTP connections.
            keepalive_expiry: Seconds before idle connections close.
            transport: Custom transport, e.g. ``httpx.MockTransport`` in tests.
        """
        self._chat_model = chat_model
        self._image_model = image_model
        self._embedding_model = embedding_model

        headers = {'Content-Type': 'application/json'}
        if api_key:
            headers['Authorization'] = f'Bearer {api_key}'

        limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_connections,
            keepalive_expiry=keepalive_expiry,
        )
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout_s,
            limits=limits,
            transport=transport,
        )

        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._tracker = ConcurrencyTracker('MODEL')

    @_boundary
    async def describe(
        self,
        image: str,
        persons: Sequence[str],
        folder_hint: str,
        *,
        location: str | None = None,
    ) -> str:
        """Describe a base64-encoded JPEG with the multimodal model.

        Args:
            image: Base64-encoded JPEG.
            persons: Tagged people, passed as a hint.
            folder_hint: Containing folder name, passed as a location hint.
            location: Optional "lat,lon" GPS position.

        Returns:
            Description text, stripped.
        """
        messages: list[JsonObject] = [
            {'role': 'system', 'content': DESCRIBE_SYSTEM_PROMPT},
            {
                'role': 'user',
                'content': [
                    {'type': 'text', 'text': 'The photo:'},
                    {
                        'type': 'image_url',
                        'image_url': {'url': f'data:image/jpeg;base64,{image}', 'detail': 'high'},
                    },
                ],
            },
            *({'role': 'user', 'content': prompt} for prompt in DESCRIBE_STYLE_PROMPTS),
        ]
        if persons:
            messages.append(
                {'role': 'user', 'content': f'The photo shows {", ".join(persons)}. Use this as a hint.'}
            )
        if folder_hint:
            hint = f'The photo is filed under "{folder_hint}". Use this as a hint for where it was taken.'
            messages.append({'role': 'user', 'content': hint})
        if location:
            messages.append({'role': 'user', 'content': f'The photo was taken at GPS position {location}.'})

        return await self._chat(self._image_model, messages)

    @_boundary
    async def embed_many(self, texts: Sequence[str]) -> Sequence[Sequence[float]]:
        """Embed texts in a single request.

        Returns:
            Embedding vectors ordered to match ``texts`` (sorted by the
            response's ``index`` field).
        """
        if not texts:
            return []

        body = {
            'model': self._embedding_model,
            'input': list(texts),
            'encoding_format': 'float',
        }
        data = await self._post('/embeddings', body)

        # Sort by index to ensure order matches input
        embeddings = sorted(data['data'], key=lambda x: x['index'])
        return [[float(v) for v in e['embedding']] for e in embeddings]

    @_boundary
    async def summarize(self, question: str, descriptions: Sequence[str]) -> str:
        """Answer ``question`` from the retrieved descriptions."""
        options = '\n'.join(descriptions)
        messages: list[JsonObject] = [
            {'role': 'system', 'content': SUMMARIZE_SYSTEM_PROMPT},
            {'role': 'user', 'content': f'Question: {question}\nOptions:\n{options}'},
        ]
        return await self._chat(self._chat_model, messages, temperature=self.SUMMARIZE_TEMPERATURE)

    async def close(self) -> None:
        """Close HTTP client and log call statistics."""
        self._tracker.log_summary()
        await self._client.aclose()

    async def __aenter__(self) -> OpenAIClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Async context manager exit."""
        await self.close()

    async def _chat(self, model: str, messages: Sequence[JsonObject], *, temperature: float | None = None) -> str:
        body: dict[str, object] = {
            'model': model,
            'messages': list(messages),
            'max_tokens': self.MAX_TOKENS,
        }
        if temperature is not None:
            body['temperature'] = temperature

        logger.debug(f'[CHAT] {model}: {len(messages)} messages')
        data = await self._post('/chat/completions', body)

        # Join every assistant choice; most servers return exactly one
        parts = [
            choice['message']['content'].strip()
            for choice in data['choices']
            if choice['message'].get('role', 'assistant') == 'assistant' and choice['message'].get('content')
        ]
        return ' '.join(parts)

    @_retry.model_breaker
    @tenacity.retry(
        retry=tenacity.retry_if_exception(_retry.is_retryable_model_error),
        stop=tenacity.stop_after_attempt(3),
        wait=tenacity.wait_exponential(multiplier=0.5, max=5),
        before_sleep=_retry.log_model_retry,
        reraise=True,
    )
    async def _post(self, path: str, body: JsonObject) -> JsonObject:
        """POST a JSON body and return the decoded response."""
        async with self._semaphore, self._tracker.track(path.strip('/')):
            response = await self._client.post(path, json=body)
            response.raise_for_status()
            data: JsonObject = response.json()
            return data
