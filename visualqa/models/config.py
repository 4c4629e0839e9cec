"""Configuration models for the visual QA framework."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

AIServiceMode = Literal["local", "cloud"]


class ViewportConfig(BaseModel):
    width: int = 1280
    height: int = 720
    name: str = "desktop"


class FrameworkConfig(BaseModel):
    # Backend selection
    ai_service_mode: AIServiceMode = "local"

    # Ollama (on-device)
    ollama_base_url: str = "http://localhost:11434/api"
    ollama_default_model: str = "llama3:latest"
    ollama_visual_model: str = "llava:latest"
    ollama_timeout_seconds: float = 120.0

    # Anthropic (cloud)
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_timeout_seconds: float = 120.0

    # Visual comparison
    visual_temperature: float = 0.1
    visual_max_tokens: int = 2048
    baseline_dir: str = "tests/visual-baselines"
    actual_dir: str = "test-results/visual-actuals"
    debug_dir: str = "test-results/ai-debug"

    # Browser
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    headless: bool = True

    @field_validator("ai_service_mode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("anthropic_api_key", mode="before")
    @classmethod
    def resolve_env_api_key(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v or None

    @field_validator("visual_temperature")
    @classmethod
    def check_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("visual_temperature must be between 0 and 1")
        return v

    @property
    def baseline_path(self) -> Path:
        return Path(self.baseline_dir).resolve()

    @property
    def actual_path(self) -> Path:
        return Path(self.actual_dir).resolve()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "FrameworkConfig":
        """Build a config from environment variables, using defaults for anything unset."""
        env = os.environ if environ is None else environ
        mapping = {
            "AI_SERVICE_MODE": "ai_service_mode",
            "OLLAMA_BASE_URL": "ollama_base_url",
            "OLLAMA_DEFAULT_MODEL": "ollama_default_model",
            "OLLAMA_VISUAL_MODEL": "ollama_visual_model",
            "OLLAMA_TIMEOUT": "ollama_timeout_seconds",
            "ANTHROPIC_API_KEY": "anthropic_api_key",
            "ANTHROPIC_MODEL": "anthropic_model",
            "VISUAL_TEMPERATURE": "visual_temperature",
            "VISUAL_BASELINE_DIR": "baseline_dir",
            "VISUAL_ACTUAL_DIR": "actual_dir",
        }
        data: dict = {}
        for env_var, field in mapping.items():
            value = env.get(env_var)
            if value:
                data[field] = value

        viewport = {}
        if env.get("VIEWPORT_WIDTH"):
            viewport["width"] = int(env["VIEWPORT_WIDTH"])
        if env.get("VIEWPORT_HEIGHT"):
            viewport["height"] = int(env["VIEWPORT_HEIGHT"])
        if viewport:
            data["viewport"] = ViewportConfig(**viewport)

        if env.get("HEADLESS"):
            data["headless"] = env["HEADLESS"].strip().lower() not in ("0", "false", "no")

        return cls(**data)

    @classmethod
    def load(cls, path: str | Path) -> "FrameworkConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file. The API key is never written out."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(exclude={"anthropic_api_key"}), f, indent=2)
