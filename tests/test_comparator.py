"""Tests for the visual comparator (capture → baseline → model → verdict)."""

import asyncio
import base64

import pytest

from visualqa.ai.base import LLMResponse, MultimodalLLMRequest
from visualqa.ai.ollama import OllamaLLMService
from visualqa.ai.prompts.visual_comparison import VISUAL_COMPARISON_SYSTEM_PROMPT
from visualqa.models.visual_result import BASELINE_SEEDED_REASON
from visualqa.visual.comparator import VisualComparator

from conftest import PNG_DATA, FakeLLMService, make_mock_page


def make_comparator(store, llm, **kwargs) -> VisualComparator:
    return VisualComparator(llm_service=llm, baseline_store=store, visual_model="llava:latest", **kwargs)


class TestBaselineLifecycle:
    """First runs and explicit updates never call the model."""

    @pytest.mark.asyncio
    async def test_first_run_creates_baseline(self, baseline_store, fake_llm, mock_page):
        comparator = make_comparator(baseline_store, fake_llm)

        verdict = await comparator.compare(mock_page, "home")

        assert verdict.passed is True
        assert verdict.reason == BASELINE_SEEDED_REASON
        assert "baseline" in verdict.reason.lower()
        assert verdict.baseline_created is True
        baseline = baseline_store.baseline_path("home")
        actual = baseline_store.actual_path("home")
        assert verdict.baseline_path == str(baseline)
        assert verdict.actual_path == str(actual)
        assert baseline.read_bytes() == actual.read_bytes() == PNG_DATA
        assert fake_llm.call_count == 0

    @pytest.mark.asyncio
    async def test_update_overwrites_existing_baseline(self, baseline_store, fake_llm):
        baseline_store.ensure_dirs()
        baseline_store.baseline_path("home").write_bytes(b"old baseline")
        page = make_mock_page(b"\x89PNG new capture")
        comparator = make_comparator(baseline_store, fake_llm)

        verdict = await comparator.compare(page, "home", update_baselines=True)

        assert verdict.passed is True
        assert verdict.reason == BASELINE_SEEDED_REASON
        assert baseline_store.baseline_path("home").read_bytes() == b"\x89PNG new capture"
        assert fake_llm.call_count == 0

    @pytest.mark.asyncio
    async def test_directories_are_created(self, baseline_store, fake_llm, mock_page):
        assert not baseline_store.baselines_dir.exists()
        await make_comparator(baseline_store, fake_llm).compare(mock_page, "home")
        assert baseline_store.baselines_dir.is_dir()
        assert baseline_store.actuals_dir.is_dir()


class TestComparison:
    """Runs where a baseline exists and the model is consulted."""

    @pytest.fixture
    def seeded_store(self, baseline_store):
        baseline_store.ensure_dirs()
        baseline_store.baseline_path("home").write_bytes(b"\x89PNG baseline")
        return baseline_store

    @pytest.mark.asyncio
    async def test_passing_verdict(self, seeded_store, fake_llm):
        page = make_mock_page(b"\x89PNG actual")
        verdict = await make_comparator(seeded_store, fake_llm).compare(page, "home")

        assert verdict.passed is True
        assert verdict.reason == "No significant visual regressions detected."
        assert verdict.baseline_created is False
        assert fake_llm.call_count == 1

    @pytest.mark.asyncio
    async def test_request_carries_images_in_order(self, seeded_store, fake_llm):
        page = make_mock_page(b"\x89PNG actual")
        comparator = make_comparator(seeded_store, fake_llm, temperature=0.15, max_tokens=1024)
        await comparator.compare(page, "home")

        request = fake_llm.requests[0]
        assert isinstance(request, MultimodalLLMRequest)
        assert request.images == [
            base64.b64encode(b"\x89PNG baseline").decode("ascii"),
            base64.b64encode(b"\x89PNG actual").decode("ascii"),
        ]
        assert request.model == "llava:latest"
        assert request.temperature == 0.15
        assert request.max_tokens == 1024
        assert request.system_prompt == VISUAL_COMPARISON_SYSTEM_PROMPT
        assert "Image 1 is the baseline" in request.prompt

    @pytest.mark.asyncio
    async def test_failing_verdict_keeps_baseline(self, seeded_store):
        llm = FakeLLMService(LLMResponse.ok(
            '```json\n{"passed": false, "reason": "Submit button is missing"}\n```'
        ))
        page = make_mock_page(b"\x89PNG actual")
        verdict = await make_comparator(seeded_store, llm).compare(page, "home")

        assert verdict.passed is False
        assert verdict.reason == "Submit button is missing"
        assert seeded_store.baseline_path("home").read_bytes() == b"\x89PNG baseline"

    @pytest.mark.asyncio
    async def test_backend_failure_becomes_failing_verdict(self, seeded_store):
        llm = FakeLLMService(LLMResponse.failed("connection refused"))
        page = make_mock_page()
        verdict = await make_comparator(seeded_store, llm).compare(page, "home")

        assert verdict.passed is False
        assert "connection refused" in verdict.reason
        assert "home" in verdict.reason
        assert seeded_store.actual_path("home").exists()

    @pytest.mark.asyncio
    async def test_unparseable_reply_becomes_failing_verdict(self, seeded_store):
        llm = FakeLLMService(LLMResponse.ok("Looks fine to me!"))
        page = make_mock_page()
        verdict = await make_comparator(seeded_store, llm).compare(page, "home")

        assert verdict.passed is False
        assert "no json" in verdict.reason.lower()
        assert seeded_store.actual_path("home").exists()

    @pytest.mark.asyncio
    async def test_deeply_nested_reply_becomes_failing_verdict(self, seeded_store):
        nested = '{"passed": ' + "[" * 100000 + "]" * 100000 + "}"
        llm = FakeLLMService(LLMResponse.ok(nested))
        verdict = await make_comparator(seeded_store, llm).compare(make_mock_page(), "home")

        assert verdict.passed is False
        assert "could not be parsed" in verdict.reason


class TestMaskingAndErrors:

    @pytest.mark.asyncio
    async def test_mask_selectors_reach_screenshot(self, baseline_store, fake_llm, mock_page):
        await make_comparator(baseline_store, fake_llm).compare(
            mock_page, "home", mask=[".clock", "#ad-banner"],
        )

        kwargs = mock_page.screenshot.call_args.kwargs
        assert kwargs["full_page"] is True
        assert kwargs["mask"] == ["locator(.clock)", "locator(#ad-banner)"]

    @pytest.mark.asyncio
    async def test_capture_failure_propagates(self, baseline_store, fake_llm, mock_page):
        mock_page.screenshot.side_effect = RuntimeError("Target page has been closed")

        with pytest.raises(RuntimeError, match="closed"):
            await make_comparator(baseline_store, fake_llm).compare(mock_page, "home")
        assert not baseline_store.has_baseline("home")
        assert fake_llm.call_count == 0

    @pytest.mark.asyncio
    async def test_invalid_name_rejected_before_capture(self, baseline_store, fake_llm, mock_page):
        with pytest.raises(ValueError):
            await make_comparator(baseline_store, fake_llm).compare(mock_page, "../escape")
        mock_page.screenshot.assert_not_called()


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_same_name_calls_are_serialized(self, baseline_store, fake_llm):
        active = 0
        max_active = 0
        page = make_mock_page()

        async def slow_screenshot(**kwargs):
            nonlocal active, max_active
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.01)
            active -= 1
            with open(kwargs["path"], "wb") as f:
                f.write(PNG_DATA)

        page.screenshot.side_effect = slow_screenshot
        comparator = make_comparator(baseline_store, fake_llm)

        first, second = await asyncio.gather(
            comparator.compare(page, "home"),
            comparator.compare(page, "home"),
        )

        assert max_active == 1
        # One call seeds the baseline, the other compares against it
        assert sorted([first.baseline_created, second.baseline_created]) == [False, True]
        assert fake_llm.call_count == 1
        assert comparator._name_locks == {}

    @pytest.mark.asyncio
    async def test_name_lock_released_after_failure(self, baseline_store, fake_llm, mock_page):
        mock_page.screenshot.side_effect = RuntimeError("Target closed")
        comparator = make_comparator(baseline_store, fake_llm)

        with pytest.raises(RuntimeError):
            await comparator.compare(mock_page, "home")

        assert comparator._name_locks == {}
        assert not comparator._name_users


class TestFromConfig:

    def test_local_mode_uses_visual_model(self, framework_config):
        comparator = VisualComparator.from_config(framework_config)

        assert isinstance(comparator.llm_service, OllamaLLMService)
        assert comparator.visual_model == "llava:latest"
        assert comparator.temperature == 0.1
        assert str(comparator.baseline_store.baselines_dir).endswith("visual-baselines")

    def test_injected_service_is_used(self, framework_config, fake_llm):
        comparator = VisualComparator.from_config(framework_config, llm_service=fake_llm)
        assert comparator.llm_service is fake_llm
        assert comparator.visual_model == framework_config.anthropic_model
