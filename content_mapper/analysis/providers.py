"""Model providers - unified interface for vision and text generation calls."""

import json
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from content_mapper.analysis.models import ImageInput, ProviderType
from content_mapper.analysis.schema import to_gemini_schema

logger = structlog.get_logger(__name__)


@dataclass
class ProviderConfig:
    """Configuration for a model provider."""

    api_key: str = ""
    base_url: str = ""
    timeout_seconds: float = 120.0


@dataclass
class UsageStats:
    """Token usage for one call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class ProviderError:
    """Error from a provider."""

    provider: ProviderType
    error_type: str
    message: str
    retryable: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "provider": self.provider.value,
            "error_type": self.error_type,
            "message": self.message,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class GenerationRequest:
    """A single generation call: prompt, optional images, output constraints."""

    prompt: str
    model: str
    images: list[ImageInput] = field(default_factory=list)
    temperature: float = 0.7
    response_mime_type: str | None = None  # "application/json" for structured output
    response_schema: dict[str, Any] | None = None
    max_output_tokens: int | None = None

    @property
    def wants_json(self) -> bool:
        return self.response_mime_type == "application/json" or self.response_schema is not None


@dataclass
class GenerationResponse:
    """Response from a single generation call."""

    provider: ProviderType
    model: str
    content: str
    raw_response: dict = field(default_factory=dict)
    usage: UsageStats = field(default_factory=UsageStats)
    latency_ms: float = 0.0
    success: bool = True
    error: ProviderError | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "provider": self.provider.value,
            "model": self.model,
            "content": self.content[:500] + "..." if len(self.content) > 500 else self.content,
            "usage": self.usage.to_dict(),
            "latency_ms": round(self.latency_ms, 2),
            "success": self.success,
            "error": self.error.to_dict() if self.error else None,
        }


class ModelProvider(ABC):
    """Abstract base class for model providers."""

    provider_type: ProviderType

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run a single generation request."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is available."""
        ...

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.config.timeout_seconds,
            transport=self._transport,
        )

    def _failure(
        self,
        request: GenerationRequest,
        start_time: float,
        error_type: str,
        message: str,
        retryable: bool,
    ) -> GenerationResponse:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.warning(
            "generation_failed",
            provider=self.provider_type.value,
            model=request.model,
            error_type=error_type,
            error=message,
        )
        return GenerationResponse(
            provider=self.provider_type,
            model=request.model,
            content="",
            success=False,
            latency_ms=latency_ms,
            error=ProviderError(
                provider=self.provider_type,
                error_type=error_type,
                message=message,
                retryable=retryable,
            ),
        )

    async def _post(
        self,
        request: GenerationRequest,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> tuple[dict | None, GenerationResponse | None, float]:
        """POST a payload; return (data, failure, start_time)."""
        start_time = time.perf_counter()
        try:
            async with self._client() as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException:
            return (
                None,
                self._failure(
                    request,
                    start_time,
                    "timeout",
                    f"Request timed out after {self.config.timeout_seconds}s",
                    retryable=True,
                ),
                start_time,
            )
        except httpx.HTTPError as e:
            return (
                None,
                self._failure(request, start_time, "network_error", str(e), retryable=True),
                start_time,
            )

        if response.status_code != 200:
            return (
                None,
                self._failure(
                    request,
                    start_time,
                    "api_error",
                    f"HTTP {response.status_code}: {response.text}",
                    retryable=response.status_code >= 500 or response.status_code == 429,
                ),
                start_time,
            )

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            return (
                None,
                self._failure(request, start_time, "bad_envelope", f"Non-JSON body: {e}", False),
                start_time,
            )
        if not isinstance(data, dict):
            return (
                None,
                self._failure(
                    request, start_time, "bad_envelope", "Response body is not a JSON object", False
                ),
                start_time,
            )
        return data, None, start_time


class GeminiProvider(ModelProvider):
    """Google Generative Language API - primary provider for vision analysis."""

    provider_type = ProviderType.GEMINI

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config, transport)
        if not config.base_url:
            config.base_url = "https://generativelanguage.googleapis.com/v1beta"

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        """Build the generateContent body (image parts first, then text)."""
        parts: list[dict[str, Any]] = [
            {"inline_data": {"mime_type": image.mime_type, "data": image.to_base64()}}
            for image in request.images
        ]
        parts.append({"text": request.prompt})

        generation_config: dict[str, Any] = {"temperature": request.temperature}
        if request.response_mime_type:
            generation_config["responseMimeType"] = request.response_mime_type
        if request.response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = to_gemini_schema(request.response_schema)
        if request.max_output_tokens:
            generation_config["maxOutputTokens"] = request.max_output_tokens

        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run generation via generateContent."""
        headers = {
            "x-goog-api-key": self.config.api_key,
            "Content-Type": "application/json",
        }
        data, failure, start_time = await self._post(
            request,
            f"{self.config.base_url}/models/{request.model}:generateContent",
            headers,
            self.build_payload(request),
        )
        if failure is not None:
            return failure
        assert data is not None

        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason", "no candidates")
            return self._failure(
                request, start_time, "blocked", f"Model returned no output: {block_reason}", False
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        content = "".join(part.get("text", "") for part in parts)

        usage_data = data.get("usageMetadata") or {}
        usage = UsageStats(
            prompt_tokens=usage_data.get("promptTokenCount", 0),
            completion_tokens=usage_data.get("candidatesTokenCount", 0),
            total_tokens=usage_data.get("totalTokenCount", 0),
        )

        return GenerationResponse(
            provider=self.provider_type,
            model=request.model,
            content=content,
            raw_response=data,
            usage=usage,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            success=True,
        )

    async def health_check(self) -> bool:
        """Check if the Generative Language API is reachable with this key."""
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get(
                    f"{self.config.base_url}/models",
                    headers={"x-goog-api-key": self.config.api_key},
                )
                is_healthy: bool = response.status_code == 200
                return is_healthy
        except httpx.HTTPError:
            return False


class OpenRouterProvider(ModelProvider):
    """OpenRouter aggregator provider (OpenAI-compatible chat completions)."""

    provider_type = ProviderType.OPENROUTER

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config, transport)
        if not config.base_url:
            config.base_url = "https://openrouter.ai/api/v1"

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        """Build the chat completions body."""
        content: list[dict[str, Any]] = [{"type": "text", "text": request.prompt}]
        for image in request.images:
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.mime_type};base64,{image.to_base64()}"},
                }
            )

        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": "user", "content": content}],
            "temperature": request.temperature,
        }
        if request.max_output_tokens:
            payload["max_tokens"] = request.max_output_tokens
        if request.response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "content_analysis", "schema": request.response_schema},
            }
        elif request.wants_json:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run generation via OpenRouter."""
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Content Mapper",
        }
        data, failure, start_time = await self._post(
            request,
            f"{self.config.base_url}/chat/completions",
            headers,
            self.build_payload(request),
        )
        if failure is not None:
            return failure
        assert data is not None

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError):
            return self._failure(
                request, start_time, "bad_envelope", "Response has no choices", False
            )

        usage_data = data.get("usage") or {}
        usage = UsageStats(
            prompt_tokens=usage_data.get("prompt_tokens", 0),
            completion_tokens=usage_data.get("completion_tokens", 0),
            total_tokens=usage_data.get("total_tokens", 0),
        )

        return GenerationResponse(
            provider=self.provider_type,
            model=request.model,
            content=content,
            raw_response=data,
            usage=usage,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            success=True,
        )

    async def health_check(self) -> bool:
        """Check if OpenRouter is available."""
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get(
                    f"{self.config.base_url}/models",
                    headers={"Authorization": f"Bearer {self.config.api_key}"},
                )
                is_healthy: bool = response.status_code == 200
                return is_healthy
        except httpx.HTTPError:
            return False


class MockProvider(ModelProvider):
    """Mock provider for testing and offline runs.

    Queued responses are consumed first-in first-out; a queued ``None`` or a
    scheduled failure yields an unsuccessful response instead.
    """

    provider_type = ProviderType.MOCK

    def __init__(self, config: ProviderConfig | None = None):
        super().__init__(config or ProviderConfig())
        self.queue: deque[str | None] = deque()
        self.default_response: str | None = None
        self.fail_on_calls: set[int] = set()
        self.calls: list[GenerationRequest] = []

    def enqueue(self, *contents: str | None) -> None:
        """Queue responses for the next calls."""
        self.queue.extend(contents)

    def enqueue_json(self, *payloads: Any) -> None:
        """Queue JSON-serialized responses."""
        self.queue.extend(json.dumps(p) for p in payloads)

    def fail_on(self, *call_numbers: int) -> None:
        """Fail the given 1-based call numbers."""
        self.fail_on_calls.update(call_numbers)

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Return the next scripted response."""
        self.calls.append(request)
        call_number = len(self.calls)

        content: str | None
        if self.queue:
            content = self.queue.popleft()
        else:
            content = self.default_response

        if call_number in self.fail_on_calls or content is None:
            return GenerationResponse(
                provider=self.provider_type,
                model=request.model,
                content="",
                success=False,
                latency_ms=1.0,
                error=ProviderError(
                    provider=self.provider_type,
                    error_type="mock_failure",
                    message="Simulated failure",
                    retryable=True,
                ),
            )

        usage = UsageStats(
            prompt_tokens=len(request.prompt.split()) * 4,
            completion_tokens=len(content.split()) * 4,
        )
        usage.total_tokens = usage.prompt_tokens + usage.completion_tokens

        return GenerationResponse(
            provider=self.provider_type,
            model=request.model,
            content=content,
            usage=usage,
            latency_ms=1.0,
            success=True,
        )

    async def health_check(self) -> bool:
        """Mock provider is always healthy."""
        return True


def get_provider(
    provider_type: ProviderType,
    config: ProviderConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ModelProvider:
    """Factory function to get a model provider."""
    if config is None:
        config = ProviderConfig()

    if provider_type == ProviderType.MOCK:
        return MockProvider(config)

    providers: dict[ProviderType, type[ModelProvider]] = {
        ProviderType.GEMINI: GeminiProvider,
        ProviderType.OPENROUTER: OpenRouterProvider,
    }

    provider_class = providers.get(provider_type)
    if provider_class is None:
        raise ValueError(f"Unknown provider type: {provider_type}")

    return provider_class(config, transport)
