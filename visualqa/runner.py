"""Browser runner: opens a URL in Chromium and runs one visual comparison."""

from __future__ import annotations

import logging
from typing import Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from visualqa.models.config import FrameworkConfig
from visualqa.models.visual_result import ComparisonVerdict
from visualqa.visual.comparator import VisualComparator

logger = logging.getLogger(__name__)


async def compare_url(
    config: FrameworkConfig,
    url: str,
    name: str,
    update_baselines: bool = False,
    mask: Sequence[str] | None = None,
    comparator: VisualComparator | None = None,
) -> ComparisonVerdict:
    """Load ``url`` at the configured viewport and compare it to baseline ``name``."""
    comparator = comparator or VisualComparator.from_config(config)

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=config.headless)
        try:
            context = await browser.new_context(
                viewport={
                    "width": config.viewport.width,
                    "height": config.viewport.height,
                },
            )
            page = await context.new_page()
            logger.info("Navigating to %s", url)
            await page.goto(url, wait_until="domcontentloaded", timeout=30000)
            try:
                await page.wait_for_load_state("networkidle", timeout=10000)
            except PlaywrightError:
                # Long-polling pages never go idle
                await page.wait_for_timeout(2000)

            return await comparator.compare(
                page, name, update_baselines=update_baselines, mask=mask,
            )
        finally:
            await browser.close()
