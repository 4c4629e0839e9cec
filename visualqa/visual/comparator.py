"""Visual comparator: AI-driven comparison of a page against its baseline."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Sequence

from playwright.async_api import Page

from visualqa.ai.base import LLMService, MultimodalLLMRequest
from visualqa.ai.exchange_log import set_debug_dir
from visualqa.ai.factory import create_llm_service, visual_model_for
from visualqa.ai.prompts.visual_comparison import (
    VISUAL_COMPARISON_SYSTEM_PROMPT,
    build_visual_comparison_prompt,
)
from visualqa.models.config import FrameworkConfig
from visualqa.models.visual_result import (
    BASELINE_SEEDED_REASON,
    ComparisonRequest,
    ComparisonVerdict,
)
from visualqa.visual.baseline_store import BaselineStore
from visualqa.visual.capture import capture_actual
from visualqa.visual.encoder import encode_image_file
from visualqa.visual.interpreter import interpret_verdict_response

logger = logging.getLogger(__name__)


class VisualComparator:
    """Captures a page, manages its baseline and asks the model for a verdict.

    Backend and LLM failures come back as failing verdicts. Capture and
    filesystem errors propagate, since there is nothing to compare without
    an actual screenshot.
    """

    def __init__(
        self,
        llm_service: LLMService,
        baseline_store: BaselineStore,
        visual_model: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 2048,
    ):
        self.llm_service = llm_service
        self.baseline_store = baseline_store
        self.visual_model = visual_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        # Per-name locks, dropped once no call for that name is active or waiting
        self._name_locks: dict[str, asyncio.Lock] = {}
        self._name_users: Counter[str] = Counter()

    @classmethod
    def from_config(
        cls, config: FrameworkConfig, llm_service: LLMService | None = None,
    ) -> "VisualComparator":
        """Build a comparator from config, creating the backend unless one is injected."""
        set_debug_dir(config.debug_dir)
        service = llm_service or create_llm_service(config)
        return cls(
            llm_service=service,
            baseline_store=BaselineStore(config.baseline_path, config.actual_path),
            visual_model=visual_model_for(config, service),
            temperature=config.visual_temperature,
            max_tokens=config.visual_max_tokens,
        )

    async def compare(
        self,
        page: Page,
        name: str,
        update_baselines: bool = False,
        mask: Sequence[str] | None = None,
    ) -> ComparisonVerdict:
        """Compare ``page`` with the baseline stored under ``name``.

        The first run for a name, or any run with ``update_baselines``,
        stores the capture as the new baseline and passes without calling
        the model. Calls for the same name on this comparator run one at a
        time.
        """
        request = ComparisonRequest(
            name=name, update_baselines=update_baselines, mask=list(mask or []),
        )
        name = request.name
        lock = self._name_locks.setdefault(name, asyncio.Lock())
        self._name_users[name] += 1
        try:
            async with lock:
                return await self._compare(page, request)
        finally:
            self._name_users[name] -= 1
            if not self._name_users[name]:
                del self._name_users[name]
                del self._name_locks[name]

    async def _compare(self, page: Page, request: ComparisonRequest) -> ComparisonVerdict:
        name = request.name
        store = self.baseline_store
        store.ensure_dirs()
        baseline_path = store.baseline_path(name)
        actual_path = store.actual_path(name)

        logger.info("Starting AI visual comparison for: %s", name)
        await capture_actual(page, actual_path, request.mask)

        baseline_exists = store.has_baseline(name)
        if request.update_baselines or not baseline_exists:
            store.promote(name)
            logger.info("Baseline %s: %s", "updated" if baseline_exists else "created", baseline_path)
            return ComparisonVerdict(
                passed=True,
                reason=BASELINE_SEEDED_REASON,
                baseline_path=str(baseline_path),
                actual_path=str(actual_path),
                baseline_created=True,
            )

        logger.info("Comparing actual screenshot with baseline: %s", baseline_path)
        baseline_base64 = encode_image_file(baseline_path)
        actual_base64 = encode_image_file(actual_path)
        logger.debug("Image base64 sizes: baseline=%d, actual=%d chars",
                     len(baseline_base64), len(actual_base64))

        llm_request = MultimodalLLMRequest(
            prompt=build_visual_comparison_prompt(name),
            system_prompt=VISUAL_COMPARISON_SYSTEM_PROMPT,
            model=self.visual_model,
            images=[baseline_base64, actual_base64],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        response = await self.llm_service.generate_multimodal_response(llm_request)

        if not response.success:
            reason = f"LLM service error during comparison for {name}: {response.error}"
            logger.error(reason)
            return ComparisonVerdict(
                passed=False,
                reason=reason,
                baseline_path=str(baseline_path),
                actual_path=str(actual_path),
            )

        logger.debug("Raw AI analysis response for %s: %s", name, response.text)
        interpretation = interpret_verdict_response(response.text)
        logger.info("Visual comparison for %s %s: %s", name,
                    "passed" if interpretation.passed else "failed", interpretation.reason)
        return ComparisonVerdict(
            passed=interpretation.passed,
            reason=interpretation.reason,
            baseline_path=str(baseline_path),
            actual_path=str(actual_path),
        )
