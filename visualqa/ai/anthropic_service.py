"""Cloud LLM backend using the Anthropic Messages API."""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional

import anthropic

from visualqa.ai.base import (
    LLMRequest,
    LLMResponse,
    LLMService,
    MultimodalLLMRequest,
    describe_error,
)
from visualqa.ai.exchange_log import save_exchange_log
from visualqa.visual.encoder import detect_media_type

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class AnthropicLLMService(LLMService):
    """Wrapper around the async Anthropic client."""

    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = DEFAULT_MODEL,
        timeout: float = 120.0,
    ):
        super().__init__()
        api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Set it or switch AI_SERVICE_MODE to 'local'."
            )
        self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout)
        self.default_model = default_model
        logger.info("AnthropicLLMService initialized with default model: %s", default_model)

    async def generate_text(self, request: LLMRequest) -> LLMResponse:
        model = request.model or self.default_model
        logger.info("Generating text with Anthropic model: %s", model)
        temperature = request.temperature if request.temperature is not None else 0.7
        return await self._create(
            request, model,
            content=request.prompt,
            temperature=temperature,
            max_tokens=request.max_tokens or 1000,
            image_count=0,
        )

    async def generate_multimodal_response(self, request: MultimodalLLMRequest) -> LLMResponse:
        model = request.model or self.default_model
        logger.info("Generating multimodal response with Anthropic model: %s", model)

        if not request.images:
            logger.warning("generate_multimodal_response called without images. Falling back to generate_text.")
            return await self.generate_text(request)

        content: list[dict[str, Any]] = [{"type": "text", "text": request.prompt}]
        for image_base64 in request.images:
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": detect_media_type(image_base64),
                    "data": image_base64,
                },
            })

        temperature = request.temperature if request.temperature is not None else 0.2
        return await self._create(
            request, model,
            content=content,
            temperature=temperature,
            max_tokens=request.max_tokens or 2048,
            image_count=len(request.images),
        )

    async def _create(
        self,
        request: LLMRequest,
        model: str,
        content: str | list[dict[str, Any]],
        temperature: float,
        max_tokens: int,
        image_count: int,
    ) -> LLMResponse:
        self._call_count += 1
        logger.debug("Calling Anthropic (call #%d, model=%s, max_tokens=%d)",
                     self._call_count, model, max_tokens)
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": content}],
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt

        text = ""
        error: str | None = None
        try:
            call_start = time.time()
            response = await self.client.messages.create(**kwargs)
            text = response.content[0].text
            logger.info("Anthropic response received in %.1fs (%d chars)",
                        time.time() - call_start, len(text))
            if response.stop_reason == "max_tokens":
                logger.warning("Anthropic response was truncated at max_tokens=%d", max_tokens)
        except anthropic.APIError as e:
            error = f"Anthropic API error with model {model}: {describe_error(e)}"
        except (IndexError, AttributeError) as e:
            error = f"Anthropic response from model {model} had no text content: {describe_error(e)}"

        save_exchange_log(
            backend=self.name,
            call_number=self._call_count,
            model=model,
            prompt=request.prompt,
            response_text=text,
            error=error,
            system_prompt=request.system_prompt,
            image_count=image_count,
        )

        if error:
            logger.error("Error calling Anthropic: %s", error)
            return LLMResponse.failed(error)
        return LLMResponse.ok(text)
