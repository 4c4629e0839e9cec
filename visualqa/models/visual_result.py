"""Data structures passed through a single visual comparison."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

BASELINE_SEEDED_REASON = "Baseline created/updated."


def validate_name(name: str) -> str:
    """Return the stripped logical name, rejecting anything that is not a plain file stem."""
    name = name.strip()
    if not name:
        raise ValueError("Comparison name must not be empty")
    if "/" in name or "\\" in name or name in (".", ".."):
        raise ValueError(f"Comparison name must not contain path separators: {name!r}")
    return name


class ComparisonRequest(BaseModel):
    name: str
    update_baselines: bool = False
    mask: list[str] = Field(default_factory=list)  # CSS selectors

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return validate_name(v)


class Interpretation(BaseModel):
    """Outcome of reading a model reply.

    ``ok`` is True only when the reply held a well-formed verdict. Every
    failure carries ``passed=False`` and a diagnostic reason.
    """
    model_config = ConfigDict(frozen=True)

    passed: bool
    reason: str
    ok: bool = True

    @classmethod
    def failure(cls, reason: str) -> "Interpretation":
        return cls(passed=False, reason=reason, ok=False)


class ComparisonVerdict(BaseModel):
    """Result of one visual comparison, handed back to the test."""
    model_config = ConfigDict(frozen=True)

    passed: bool
    reason: str
    baseline_path: str
    actual_path: str
    baseline_created: bool = False
