"""Results of AI-assisted test authoring."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class FailureAnalysis(BaseModel):
    likely_root_cause: str
    suggested_fixes: list[str] = Field(default_factory=list)
    confidence: float = 0.0  # 0.0 - 1.0

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        return min(max(v, 0.0), 1.0)
