"""Prompt for the AI screenshot comparison (baseline vs. current)."""

from __future__ import annotations

VISUAL_COMPARISON_SYSTEM_PROMPT = (
    "You are an expert visual QA analyst. Respond only in the requested JSON format."
)

VISUAL_COMPARISON_PROMPT = """Analyze the differences between the following two screenshots of a web UI.
Image 1 is the baseline. Image 2 is the current state.

Focus STRICTLY on SIGNIFICANT visual regressions that clearly impact user experience or functionality. Examples of SIGNIFICANT regressions include:
- Missing or newly added interactive elements (buttons, links, form fields).
- Major layout breaks causing content to overlap, become unreadable, or shift position drastically (e.g., > 10% of viewport width/height).
- Text content changes that alter core information or instructions.
- Complete failure to load images or critical sections.
- Major color changes that affect readability or branding consistency (e.g., white text on white background).

IGNORE the following types of differences:
- Minor pixel shifts (less than ~10 pixels).
- Anti-aliasing or font rendering variations between environments.
- Subtle color variations (unless they impact readability as mentioned above).
- Dynamic content like dates, times, or randomly generated data (unless its absence indicates a failure).
- Minor spacing or alignment differences that don't break the layout.
- Ad variations or third-party content changes.

Respond ONLY with a JSON object in the following format, with no other text or markdown:
If there are NO significant differences based on the criteria above: {"passed": true, "reason": "No significant visual regressions detected."}
If there ARE significant differences: {"passed": false, "reason": "[Brief description of the MOST significant difference(s) found, focusing on impact]"}
If you cannot perform the comparison (e.g., missing images): {"passed": false, "reason": "Comparison could not be performed due to missing visual content."}"""


def build_visual_comparison_prompt(name: str | None = None) -> str:
    """Build the comparison instruction, optionally naming the screen under test."""
    if not name:
        return VISUAL_COMPARISON_PROMPT
    return f"Screen under test: {name}\n\n{VISUAL_COMPARISON_PROMPT}"
