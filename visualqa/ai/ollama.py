"""On-device LLM backend served by a local Ollama instance."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from visualqa.ai.base import (
    LLMRequest,
    LLMResponse,
    LLMService,
    MultimodalLLMRequest,
    describe_error,
)
from visualqa.ai.exchange_log import save_exchange_log

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434/api"
DEFAULT_MODEL = "llama3:latest"


class OllamaLLMService(LLMService):
    """Talks to Ollama's HTTP API (``/generate``, ``/tags``, ``/pull``)."""

    name = "ollama"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        default_model: str = DEFAULT_MODEL,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self.timeout = timeout
        self._transport = transport
        logger.info("OllamaLLMService initialized with model: %s (%s)", default_model, self.base_url)

    def _client(self, timeout: float | httpx.Timeout | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.timeout,
            transport=self._transport,
        )

    async def generate_text(self, request: LLMRequest) -> LLMResponse:
        model = request.model or self.default_model
        logger.info("Generating text with model: %s", model)
        payload = self._build_payload(
            request, model,
            default_temperature=0.7, default_max_tokens=1000,
        )
        return await self._generate(payload, request, image_count=0)

    async def generate_multimodal_response(self, request: MultimodalLLMRequest) -> LLMResponse:
        model = request.model or self.default_model
        logger.info("Generating multimodal response with model: %s", model)
        payload = self._build_payload(
            request, model,
            default_temperature=0.2, default_max_tokens=2048,
        )
        if request.images:
            payload["images"] = list(request.images)
        else:
            logger.warning("generate_multimodal_response called without images.")
        return await self._generate(payload, request, image_count=len(request.images))

    @staticmethod
    def _build_payload(
        request: LLMRequest,
        model: str,
        default_temperature: float,
        default_max_tokens: int,
    ) -> dict[str, Any]:
        temperature = request.temperature if request.temperature is not None else default_temperature
        payload: dict[str, Any] = {
            "model": model,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": request.max_tokens or default_max_tokens,
            },
        }
        if request.system_prompt:
            payload["system"] = request.system_prompt
        return payload

    async def _generate(self, payload: dict[str, Any], request: LLMRequest, image_count: int) -> LLMResponse:
        self._call_count += 1
        url = f"{self.base_url}/generate"
        text = ""
        error: str | None = None
        try:
            call_start = time.time()
            async with self._client() as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                data = response.json()
            text = data.get("response") if isinstance(data, dict) else None
            if not isinstance(text, str):
                text = ""
                error = f"Ollama response from {url} has no 'response' text"
            else:
                logger.info("Ollama response received in %.1fs (%d chars)",
                            time.time() - call_start, len(text))
        except httpx.HTTPStatusError as e:
            error = f"Ollama returned HTTP {e.response.status_code} for {url}: {e.response.text[:200]}"
        except httpx.HTTPError as e:
            error = f"Error calling Ollama at {url}: {describe_error(e)}"
        except ValueError as e:
            error = f"Ollama returned a non-JSON body: {describe_error(e)}"

        save_exchange_log(
            backend=self.name,
            call_number=self._call_count,
            model=payload["model"],
            prompt=request.prompt,
            response_text=text,
            error=error,
            system_prompt=request.system_prompt,
            image_count=image_count,
        )

        if error:
            logger.error("Error calling local LLM: %s", error)
            return LLMResponse.failed(error)
        return LLMResponse.ok(text)

    # ------------------------------------------------------------------
    # Model management
    # ------------------------------------------------------------------

    async def list_models(self) -> list[str]:
        """Names of all models the server has pulled; empty if unreachable."""
        try:
            async with self._client(timeout=10.0) as client:
                response = await client.get(f"{self.base_url}/tags")
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error listing models: %s", describe_error(e))
            return []
        models = (data.get("models") or []) if isinstance(data, dict) else []
        return [m["name"] for m in models if isinstance(m, dict) and "name" in m]

    async def is_running(self) -> bool:
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/tags")
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("Ollama is not running: %s", describe_error(e))
            return False

    async def is_model_available(self, model: str | None = None) -> bool:
        return (model or self.default_model) in await self.list_models()

    async def pull_model(self, model: str) -> bool:
        """Ask the server to download ``model``; blocks until it finishes."""
        logger.info("Pulling model %s...", model)
        try:
            # Pulls can take minutes; no read timeout
            async with self._client(timeout=httpx.Timeout(10.0, read=None)) as client:
                response = await client.post(
                    f"{self.base_url}/pull", json={"model": model, "stream": False},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Failed to pull model %s: %s", model, describe_error(e))
            return False
        status = data.get("status", "") if isinstance(data, dict) else ""
        logger.info("Pull model %s status: %s", model, status or "(none)")
        return status == "success"

    async def pull_model_if_needed(self, model: str) -> bool:
        if await self.is_model_available(model):
            logger.info("Model %s is already available", model)
            return True
        logger.info("Model %s not found, pulling...", model)
        if not await self.pull_model(model):
            return False
        return await self.is_model_available(model)
