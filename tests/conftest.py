"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from visualqa.ai.base import LLMRequest, LLMResponse, LLMService, MultimodalLLMRequest
from visualqa.ai.exchange_log import set_debug_dir
from visualqa.models.config import FrameworkConfig, ViewportConfig
from visualqa.visual.baseline_store import BaselineStore


# 1x1 pixel PNG
PNG_DATA = (
    b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01'
    b'\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde\x00\x00'
    b'\x00\x0cIDATx\x9cc\x00\x01\x00\x00\x05\x00\x01\r\n-'
    b'\xb4\x00\x00\x00\x00IEND\xaeB`\x82'
)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def debug_dir(tmp_path: Path) -> Path:
    """Keep AI exchange logs out of the working tree."""
    path = tmp_path / "ai-debug"
    set_debug_dir(path)
    return path


@pytest.fixture
def framework_config(tmp_path: Path) -> FrameworkConfig:
    """Create a test framework configuration rooted in tmp_path."""
    return FrameworkConfig(
        ai_service_mode="local",
        ollama_base_url="http://ollama.test/api",
        ollama_default_model="llama3:latest",
        ollama_visual_model="llava:latest",
        visual_temperature=0.1,
        baseline_dir=str(tmp_path / "tests" / "visual-baselines"),
        actual_dir=str(tmp_path / "test-results" / "visual-actuals"),
        debug_dir=str(tmp_path / "ai-debug"),
        viewport=ViewportConfig(width=1280, height=720),
    )


@pytest.fixture
def baseline_store(tmp_path: Path) -> BaselineStore:
    """Create a baseline store with empty directories."""
    return BaselineStore(
        baselines_dir=tmp_path / "tests" / "visual-baselines",
        actuals_dir=tmp_path / "test-results" / "visual-actuals",
    )


# ============================================================================
# Browser Fixtures
# ============================================================================


def make_mock_page(image_data: bytes = PNG_DATA) -> Mock:
    """Create a mock Playwright page whose screenshot() writes ``image_data``.

    Set ``page.image_data`` to change what the next screenshot contains.
    """
    page = Mock()
    page.image_data = image_data

    async def _screenshot(**kwargs):
        Path(kwargs["path"]).write_bytes(page.image_data)
        return page.image_data

    page.screenshot = AsyncMock(side_effect=_screenshot)
    page.locator = Mock(side_effect=lambda selector: f"locator({selector})")
    return page


@pytest.fixture
def mock_page() -> Mock:
    return make_mock_page()


# ============================================================================
# LLM Fixtures
# ============================================================================


class FakeLLMService(LLMService):
    """In-memory backend that records requests and replays a canned response."""

    name = "fake"

    def __init__(self, response: LLMResponse | None = None):
        super().__init__()
        self.response = response or LLMResponse.ok(
            '{"passed": true, "reason": "No significant visual regressions detected."}'
        )
        self.requests: list[LLMRequest] = []

    async def generate_text(self, request: LLMRequest) -> LLMResponse:
        self._call_count += 1
        self.requests.append(request)
        return self.response

    async def generate_multimodal_response(self, request: MultimodalLLMRequest) -> LLMResponse:
        self._call_count += 1
        self.requests.append(request)
        return self.response


@pytest.fixture
def fake_llm() -> FakeLLMService:
    return FakeLLMService()
