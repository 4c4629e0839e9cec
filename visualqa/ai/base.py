"""Common request/response contract for LLM backends (on-device or cloud)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field


class LLMRequest(BaseModel):
    prompt: str
    model: Optional[str] = None  # backend default when unset
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    system_prompt: Optional[str] = None


class MultimodalLLMRequest(LLMRequest):
    images: list[str] = Field(default_factory=list)  # base64, in prompt order


class LLMResponse(BaseModel):
    text: str = ""
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls, text: str) -> "LLMResponse":
        return cls(text=text, success=True)

    @classmethod
    def failed(cls, error: str) -> "LLMResponse":
        return cls(text="", success=False, error=error)


class LLMService(ABC):
    """Interface every LLM backend implements.

    Implementations never raise out of ``generate_*``: transport and backend
    errors come back as ``LLMResponse(success=False, error=...)``.
    """

    name: str = "llm"

    def __init__(self) -> None:
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    @abstractmethod
    async def generate_text(self, request: LLMRequest) -> LLMResponse:
        """Generate text from a prompt."""

    @abstractmethod
    async def generate_multimodal_response(self, request: MultimodalLLMRequest) -> LLMResponse:
        """Generate text from a prompt plus ordered base64 images."""


def describe_error(error: BaseException) -> str:
    """Human-readable cause for a failed backend call."""
    message = str(error).strip()
    if not message:
        return type(error).__name__
    return message
