"""Backend selection: builds the LLM service named by the configuration."""

from __future__ import annotations

import logging

from visualqa.ai.anthropic_service import AnthropicLLMService
from visualqa.ai.base import LLMService
from visualqa.ai.ollama import OllamaLLMService
from visualqa.models.config import FrameworkConfig

logger = logging.getLogger(__name__)


def _create_ollama(config: FrameworkConfig) -> OllamaLLMService:
    return OllamaLLMService(
        base_url=config.ollama_base_url,
        default_model=config.ollama_default_model,
        timeout=config.ollama_timeout_seconds,
    )


def create_llm_service(config: FrameworkConfig) -> LLMService:
    """Return a new backend for ``config.ai_service_mode``.

    Cloud mode falls back to the local Ollama backend when the Anthropic
    client cannot be constructed (e.g. no API key). The caller owns the
    returned instance.
    """
    mode = config.ai_service_mode
    logger.info("Configuring LLM service for AI_SERVICE_MODE=%s", mode)

    match mode:
        case "cloud":
            try:
                service = AnthropicLLMService(
                    api_key=config.anthropic_api_key,
                    default_model=config.anthropic_model,
                    timeout=config.anthropic_timeout_seconds,
                )
                logger.info("Using AnthropicLLMService.")
                return service
            except EnvironmentError as e:
                logger.error("Failed to initialize AnthropicLLMService: %s", e)
                logger.warning("Falling back to OllamaLLMService.")
                return _create_ollama(config)
        case "local":
            logger.info("Using OllamaLLMService.")
            return _create_ollama(config)
        case _:
            logger.warning("Unknown AI service mode %r, using OllamaLLMService.", mode)
            return _create_ollama(config)


def visual_model_for(config: FrameworkConfig, service: LLMService) -> str:
    """Vision-capable model to request from ``service``."""
    if isinstance(service, OllamaLLMService):
        return config.ollama_visual_model
    return config.anthropic_model
