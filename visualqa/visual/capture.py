"""Capture stage: full-page screenshot of the page under test."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from playwright.async_api import Page

logger = logging.getLogger(__name__)


async def capture_actual(page: Page, path: Path, mask: Sequence[str] | None = None) -> Path:
    """Take a full-page screenshot to ``path``, overwriting any earlier file.

    Regions matched by the ``mask`` selectors are painted over by Playwright
    before the image is written. Failures are not caught.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    options: dict = {"path": str(path), "full_page": True}
    if mask:
        options["mask"] = [page.locator(selector) for selector in mask]
        logger.debug("Masking %d region(s): %s", len(mask), ", ".join(mask))

    await page.screenshot(**options)
    logger.info("Actual screenshot saved to: %s", path)
    return path
