"""Client for a locally hosted Ollama server (``/api/generate`` and ``/api/tags``)."""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, List, Optional
from urllib import error, request

from pydantic import BaseModel, Field, ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from .logging_utils import LOG_TAG_LLM, debug_llm_enabled, log_llm

DEFAULT_OLLAMA_BASE_URL = "http://127.0.0.1:11434"
_GENERATE_ENDPOINT = "/api/generate"
_TAGS_ENDPOINT = "/api/tags"

DEFAULT_STOP = ["\n\n", "Human:", "User:"]


class LocalLLMError(RuntimeError):
    """Raised when a local LLM invocation fails."""


class LocalLLMHTTPError(LocalLLMError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, message: str) -> None:
        self.status = status
        super().__init__(f"Ollama request failed with status {status}: {message}")


class LocalLLMConnectionError(LocalLLMError):
    """The server could not be reached at all."""


class LocalLLMEmptyResponse(LocalLLMError):
    """The server answered but produced no text."""


# =============================
# Wire schemas
# =============================

class GenerationOptions(BaseModel):
    num_predict: int = 100
    temperature: float = 0.8
    top_p: float = 0.9
    stop: List[str] = Field(default_factory=lambda: list(DEFAULT_STOP))


class GenerationRequest(BaseModel):
    """A single text-generation request as the queue sees it."""

    prompt: str
    max_tokens: int = 100
    temperature: float = 0.8
    top_p: float = 0.9
    stop: List[str] = Field(default_factory=lambda: list(DEFAULT_STOP))
    label: str = ""

    def to_payload(self, model: str) -> dict[str, Any]:
        """Body for POST /api/generate."""
        options = GenerationOptions(
            num_predict=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
            stop=self.stop,
        )
        return {
            "model": model,
            "prompt": self.prompt,
            "stream": False,
            "options": options.model_dump(),
        }


class GenerateResponse(BaseModel):
    response: str = ""


class _TagModel(BaseModel):
    name: str


class TagsResponse(BaseModel):
    models: List[_TagModel] = Field(default_factory=list)


# =============================
# Blocking HTTP helpers
# =============================

def _perform_generate_request(
    payload: dict[str, Any],
    base_url: str,
    timeout: float,
) -> str:
    """Execute the blocking POST against the Ollama REST API."""

    url = f"{base_url.rstrip('/')}{_GENERATE_ENDPOINT}"
    data = json.dumps(payload).encode("utf-8")
    req = request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )

    try:
        with request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
        raise LocalLLMHTTPError(exc.code, body or str(exc.reason)) from exc
    except error.URLError as exc:
        raise LocalLLMConnectionError(
            f"Could not reach Ollama at {url}: {exc.reason}"
        ) from exc
    except (TimeoutError, ConnectionError) as exc:
        raise LocalLLMConnectionError(f"Connection to Ollama at {url} failed: {exc}") from exc

    try:
        parsed = GenerateResponse.model_validate_json(raw)
    except ValidationError as exc:
        raise LocalLLMError("Ollama returned a malformed generate response.") from exc

    if not parsed.response.strip():
        raise LocalLLMEmptyResponse("Ollama response did not include any text.")
    return parsed.response


def _perform_tags_request(base_url: str, timeout: float) -> TagsResponse:
    """Blocking GET /api/tags."""

    url = f"{base_url.rstrip('/')}{_TAGS_ENDPOINT}"
    req = request.Request(url, method="GET")
    try:
        with request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8")
    except error.HTTPError as exc:
        raise LocalLLMHTTPError(exc.code, str(exc.reason)) from exc
    except (error.URLError, TimeoutError, ConnectionError) as exc:
        raise LocalLLMConnectionError(f"Could not reach Ollama at {url}: {exc}") from exc

    try:
        return TagsResponse.model_validate_json(raw)
    except ValidationError as exc:
        raise LocalLLMError("Ollama returned a malformed tags response.") from exc


def resolve_base_url(base_url: Optional[str] = None) -> str:
    return (base_url or os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL).rstrip("/")


# =============================
# Async API
# =============================

async def call_ollama_generate(
    generation: GenerationRequest,
    *,
    llm_model: str,
    base_url: Optional[str] = None,
    timeout: float = 5.0,
    max_attempts: int = 1,
) -> str:
    """Invoke ``/api/generate`` and return the raw response text.

    Connection failures are retried up to ``max_attempts`` times; HTTP errors
    and empty responses surface immediately since a retry will not fix them.
    """

    resolved_base = resolve_base_url(base_url)
    if not generation.prompt.strip():
        raise LocalLLMError("Cannot call Ollama with an empty prompt.")

    payload = generation.to_payload(llm_model)
    if debug_llm_enabled():
        log_llm(f"  {LOG_TAG_LLM} [Ollama] {generation.label or 'generate'} prompt:\n{generation.prompt}")

    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(LocalLLMConnectionError),
        stop=stop_after_attempt(max(1, max_attempts)),
        reraise=True,
    ):
        with attempt:
            return await asyncio.to_thread(
                _perform_generate_request,
                payload,
                resolved_base,
                timeout,
            )

    raise LocalLLMError("Ollama retry loop exited unexpectedly")


async def check_connection(base_url: Optional[str] = None, timeout: float = 2.0) -> bool:
    """Short GET against ``/api/tags``; any failure means unavailable."""
    try:
        await asyncio.wait_for(
            asyncio.to_thread(_perform_tags_request, resolve_base_url(base_url), timeout),
            timeout=timeout + 0.5,
        )
    except (LocalLLMError, asyncio.TimeoutError):
        return False
    return True


async def list_models(base_url: Optional[str] = None, timeout: float = 2.0) -> List[str]:
    """Names of models the server reports; raises :class:`LocalLLMError` when offline."""
    tags = await asyncio.to_thread(_perform_tags_request, resolve_base_url(base_url), timeout)
    return [model.name for model in tags.models]


class OllamaBackend:
    """Generation backend the queue drives, bound to one server and model."""

    def __init__(
        self,
        *,
        model: str,
        base_url: Optional[str] = None,
        request_timeout: float = 5.0,
        max_attempts: int = 1,
    ) -> None:
        self.model = model
        self.base_url = resolve_base_url(base_url)
        self.request_timeout = request_timeout
        self.max_attempts = max_attempts

    async def generate(self, generation: GenerationRequest) -> str:
        return await call_ollama_generate(
            generation,
            llm_model=self.model,
            base_url=self.base_url,
            timeout=self.request_timeout,
            max_attempts=self.max_attempts,
        )

    async def check_connection(self, timeout: float = 2.0) -> bool:
        return await check_connection(self.base_url, timeout)


__all__ = [
    "DEFAULT_OLLAMA_BASE_URL",
    "DEFAULT_STOP",
    "LocalLLMError",
    "LocalLLMHTTPError",
    "LocalLLMConnectionError",
    "LocalLLMEmptyResponse",
    "GenerationOptions",
    "GenerationRequest",
    "GenerateResponse",
    "TagsResponse",
    "call_ollama_generate",
    "check_connection",
    "list_models",
    "resolve_base_url",
    "OllamaBackend",
]
