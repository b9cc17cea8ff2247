"""Async OpenAI client wrapper and related value objects.

Classes:
    ChatSample: Lightweight container for a single chat completion.
    EmbeddingBatch: Collected embedding vectors plus metadata returned from the embeddings API.
    OpenAIService: Handles chat completions and embeddings with bounded retry and timeout semantics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    OpenAIError,
    RateLimitError,
)
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import Settings, get_settings
from app.core.errors import UpstreamUnavailable

_LOGGER = logging.getLogger(__name__)

_EMBED_BATCH_MAX = 256
_TRANSIENT_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)


@dataclass(slots=True)
class ChatSample:
    text: str
    model: str
    tokens: Optional[int]
    finish_reason: Optional[str]
    usage: Optional[dict[str, Any]]


@dataclass(slots=True)
class EmbeddingBatch:
    vectors: list[list[float]]
    model: str
    dim: int
    model_revision: str | None = None
    provider: str = "openai"


class OpenAIService:
    retry_wait = wait_exponential(multiplier=1, min=1, max=20)

    def __init__(self, settings: Settings | None = None, client: Optional[AsyncOpenAI] = None) -> None:
        settings = settings or get_settings()
        api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
        if client is not None:
            self._client = client
        elif api_key:
            # tenacity owns retries so attempts stay bounded by a single setting.
            self._client = AsyncOpenAI(
                api_key=api_key,
                timeout=settings.upstream_timeout_seconds,
                max_retries=0,
            )
        else:
            self._client = None
        self._settings = settings

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def complete_chat(
        self,
        *,
        messages: list[dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatSample:
        if self._client is None:
            raise UpstreamUnavailable("generative_text", "OpenAI client not configured. Set OPENAI_API_KEY.")

        chosen_model = model or self._settings.openai_chat_model
        payload: dict[str, Any] = dict(
            model=chosen_model,
            messages=messages,
            temperature=temperature if temperature is not None else self._settings.summary_temperature,
            n=1,
        )
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        try:
            response = await self._with_attempts(_retry_chat)(self._client, payload)
        except OpenAIError as exc:
            raise UpstreamUnavailable("generative_text", str(exc) or exc.__class__.__name__) from exc

        if not response.choices:
            raise UpstreamUnavailable("generative_text", "completion returned no choices")
        choice = response.choices[0]
        message_content = getattr(choice.message, "content", "") or ""
        usage_dict = response.usage.model_dump() if response.usage is not None else None
        completion_tokens = usage_dict.get("completion_tokens") if usage_dict else None

        return ChatSample(
            text=message_content.strip(),
            model=getattr(response, "model", None) or chosen_model,
            tokens=completion_tokens,
            finish_reason=getattr(choice, "finish_reason", None),
            usage=usage_dict,
        )

    async def embed_texts(
        self,
        texts: Iterable[str],
        *,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
    ) -> EmbeddingBatch:
        docs = list(texts)
        if self._client is None:
            raise UpstreamUnavailable("embedding", "OpenAI client not configured. Set OPENAI_API_KEY.")

        chosen_model = model or self._settings.openai_embedding_model
        chosen_dim = dimensions or self._settings.embedding_dim
        if not docs:
            return EmbeddingBatch(vectors=[], model=chosen_model, dim=0)

        vectors: list[list[float]] = []
        model_revision: str | None = None

        for start in range(0, len(docs), _EMBED_BATCH_MAX):
            chunk = docs[start : start + _EMBED_BATCH_MAX]
            payload = dict(model=chosen_model, input=chunk, dimensions=chosen_dim)
            try:
                response = await self._with_attempts(_retry_embeddings)(self._client, payload)
            except OpenAIError as exc:
                raise UpstreamUnavailable("embedding", str(exc) or exc.__class__.__name__) from exc

            chunk_vectors = [list(item.embedding) for item in sorted(response.data, key=lambda item: item.index)]
            if len(chunk_vectors) != len(chunk):
                raise UpstreamUnavailable(
                    "embedding",
                    f"expected {len(chunk)} vectors, received {len(chunk_vectors)}",
                )
            vectors.extend(chunk_vectors)
            response_model = getattr(response, "model", None)
            if response_model:
                model_revision = response_model

        _LOGGER.debug("Embedded %d texts with %s", len(docs), chosen_model)
        return EmbeddingBatch(
            vectors=vectors,
            model=chosen_model,
            dim=len(vectors[0]) if vectors else 0,
            model_revision=model_revision,
            provider="openai",
        )

    def _with_attempts(self, call):
        return call.retry_with(stop=stop_after_attempt(self._settings.upstream_max_attempts), wait=self.retry_wait)


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=20),
    stop=stop_after_attempt(1),
    retry=retry_if_exception_type(_TRANSIENT_ERRORS),
    reraise=True,
)
async def _retry_chat(client: AsyncOpenAI, payload: dict[str, Any]):
    return await client.chat.completions.create(**payload)


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=20),
    stop=stop_after_attempt(1),
    retry=retry_if_exception_type(_TRANSIENT_ERRORS),
    reraise=True,
)
async def _retry_embeddings(client: AsyncOpenAI, payload: dict[str, Any]):
    return await client.embeddings.create(**payload)
