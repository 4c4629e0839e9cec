"""Debug logs of every AI exchange (prompt, response, error)."""

from __future__ import annotations

import logging
import time
from pathlib import Path

logger = logging.getLogger(__name__)

# Configurable debug directory, set by the CLI or comparator at startup
_debug_dir: Path | None = None


def set_debug_dir(path: str | Path) -> None:
    """Set the directory for AI exchange logs."""
    global _debug_dir
    _debug_dir = Path(path)
    _debug_dir.mkdir(parents=True, exist_ok=True)


def get_debug_dir() -> Path:
    """Get or create the debug directory."""
    global _debug_dir
    if _debug_dir is None:
        _debug_dir = Path("./test-results") / "ai-debug"
    _debug_dir.mkdir(parents=True, exist_ok=True)
    return _debug_dir


def save_exchange_log(
    backend: str,
    call_number: int,
    model: str,
    prompt: str,
    response_text: str,
    error: str | None = None,
    system_prompt: str | None = None,
    image_count: int = 0,
) -> Path | None:
    """Write one AI exchange to a log file and return its path.

    Logging failures never interrupt the caller.
    """
    try:
        debug_dir = get_debug_dir()
        ts = time.strftime("%Y%m%d_%H%M%S")
        log_file = debug_dir / f"ai_call_{backend}_{ts}_{call_number:03d}.log"

        with open(log_file, "w", encoding="utf-8") as f:
            f.write(f"=== AI CALL #{call_number} ({backend}, model={model}) "
                    f"at {time.strftime('%Y-%m-%d %H:%M:%S')} ===\n\n")
            if system_prompt:
                f.write(f"=== SYSTEM PROMPT ({len(system_prompt)} chars) ===\n")
                f.write(system_prompt)
                f.write("\n\n")
            header = f"=== PROMPT ({len(prompt)} chars"
            if image_count:
                header += f", {image_count} image(s) attached"
            f.write(header + ") ===\n")
            f.write(prompt)
            f.write(f"\n\n=== RESPONSE ({len(response_text)} chars) ===\n")
            f.write(response_text if response_text else "(empty)")
            if error:
                f.write(f"\n\n=== ERROR ===\n{error}\n")

        logger.debug("AI exchange logged to %s", log_file)
        return log_file
    except OSError as log_err:
        logger.debug("Failed to save AI exchange log: %s", log_err)
        return None
