"""
LLM Prompts
===========
Centralised store for the generation and evaluation prompts.

Prompt Design Rules:
    - Adapt the reference's visual language to elements that actually exist
    - Never invent elements or replicate layouts the target does not have
    - Focus on colors, typography, spacing, borders, shadows, hover states
    - Return only the stylesheet — no explanations, no markdown

Iteration Strategy:
    - Iteration 1: full structure tree, class list and existing stylesheet
    - Iteration 2+: previous feedback first, current stylesheet to build upon

Evaluation Format:
    The evaluator must answer either the single word DONE or
        QUALITY_SCORE: <0.0-1.0>
        FEEDBACK: <specific suggestions>
    which parser/evaluation_parser.py reads strictly.
"""
import logging
from typing import Any, Dict, List, Optional

from stylepilot.models.run_config import RunConfig
from stylepilot.models.snapshot import Snapshot

logger = logging.getLogger(__name__)

_TEXT_PREVIEW = 50


# ---------------------------------------------------------------------------
# System Prompts
# ---------------------------------------------------------------------------
GENERATION_SYSTEM_PROMPT = (
    "You are an expert CSS designer restyling an existing page so it matches a reference design.\n"
    "\n"
    "HARD RULES — you MUST follow ALL of these:\n"
    "1. Style ONLY selectors for classes and elements that exist in the provided structure.\n"
    "2. Do NOT hide, remove or reorder content.\n"
    "3. Keep the page's functional layout; transform its visual appearance.\n"
    "4. Every rule block must have balanced braces.\n"
    "5. Do NOT add explanations, apologies, or markdown formatting.\n"
    "\n"
    "RESPONSE FORMAT — respond with ONLY the complete stylesheet text."
)

EVALUATION_SYSTEM_PROMPT = (
    "You are a strict visual design reviewer. You compare a screenshot of a page "
    "with a reference design and grade how closely the page matches it.\n"
    "Respond ONLY in the requested format."
)


# ---------------------------------------------------------------------------
# Structure helpers
# ---------------------------------------------------------------------------
def _roots(tree: Dict[str, Any]) -> List[Dict[str, Any]]:
    if not tree:
        return []
    if "tag" in tree:
        return [tree]
    return list(tree.get("children", []))


def collect_class_names(tree: Dict[str, Any]) -> List[str]:
    """Unique class names in document order."""
    seen: List[str] = []

    def visit(node: Dict[str, Any]) -> None:
        for cls in node.get("classes", []):
            if cls not in seen:
                seen.append(cls)
        for child in node.get("children", []):
            visit(child)

    for root in _roots(tree):
        visit(root)
    return seen


def format_structure_tree(tree: Dict[str, Any]) -> str:
    """Render the structural summary as indented pseudo-HTML."""

    def render(node: Dict[str, Any], indent: int) -> str:
        pad = "  " * indent
        tag = node.get("tag", "div")
        line = f"{pad}<{tag}"
        classes = node.get("classes", [])
        if classes:
            line += f' class="{" ".join(classes)}"'
        for key, value in (node.get("attributes") or {}).items():
            line += f' {key}="{value}"'
        line += ">"
        text = node.get("text") or ""
        if text:
            line += f" {text[:_TEXT_PREVIEW]}{'...' if len(text) > _TEXT_PREVIEW else ''}"
        children = node.get("children", [])
        if not children:
            return f"{line} </{tag}>"
        inner = "\n".join(render(child, indent + 1) for child in children)
        return f"{line}\n{inner}\n{pad}</{tag}>"

    return "\n".join(render(root, 0) for root in _roots(tree))


def _option_lines(config: RunConfig, refinement: bool) -> List[str]:
    opts = config.options
    lines: List[str] = []
    if opts.generate_responsive_variants:
        lines.append(
            "Ensure responsive design is maintained." if refinement
            else "Include responsive design considerations (media queries for narrow viewports)."
        )
    if opts.force_overrides:
        lines.append("Use !important declarations strategically to override existing styles.")
    if opts.preserve_existing:
        lines.append("Preserve existing rules; only add or refine declarations.")
    if opts.optimize_for_size:
        lines.append("Optimize for size: efficient selectors, no redundant declarations.")
    return lines


# ---------------------------------------------------------------------------
# Generation prompt
# ---------------------------------------------------------------------------
def build_generation_prompt(
    config: RunConfig,
    snapshot: Snapshot,
    iteration: int,
    feedback: Optional[str] = None,
) -> str:
    """
    Build the user prompt for one generation call.

    Parameters
    ----------
    config : RunConfig
        Frozen run configuration (intent and options).
    snapshot : Snapshot
        Current target state (structure and applied stylesheet).
    iteration : int
        1-based iteration number.
    feedback : str or None
        Evaluator feedback from the previous iteration.

    Returns
    -------
    str
        Formatted user prompt.
    """
    classes = collect_class_names(snapshot.structural_summary)
    class_list = "\n".join(f"- .{cls}" for cls in classes) or "- (no classes found)"
    current = snapshot.current_artifact_text or "/* No existing CSS */"
    parts: List[str] = []

    if iteration <= 1:
        goal = (
            f"SPECIFIC FOCUS: {config.intent_description}" if config.intent_description
            else "GOAL: Match the overall aesthetic and visual style of the reference design"
        )
        parts.append("Transform the current page so it adopts the reference design's visual language.")
        parts.append(goal)
        parts.append(f"CURRENT PAGE STRUCTURE:\n{format_structure_tree(snapshot.structural_summary)}")
        parts.append(f"AVAILABLE CLASSES TO STYLE:\n{class_list}")
        parts.append(f"EXISTING CSS (to build upon):\n{current}")
    else:
        goal = config.intent_description or "Transform the page to match the reference design aesthetics"
        parts.append("Improve the CSS based on feedback to better match the reference design.")
        parts.append(f"DESIGN GOAL: {goal}")
        parts.append(f"ITERATION: {iteration}")
        parts.append(f"PREVIOUS FEEDBACK: {feedback or 'No specific feedback provided'}")
        parts.append(f"CURRENT CSS:\n{current}")
        parts.append(f"AVAILABLE CLASSES:\n{class_list}")
        parts.append(
            "INSTRUCTIONS:\n"
            "- Address the specific feedback provided.\n"
            "- Build upon the existing CSS rather than starting over.\n"
            "- Keep what already works from the previous iteration."
        )

    options = _option_lines(config, refinement=iteration > 1)
    if options:
        parts.append("\n".join(options))

    return "\n\n".join(parts)


# ---------------------------------------------------------------------------
# Evaluation prompt
# ---------------------------------------------------------------------------
def build_evaluation_prompt(intent_description: str, artifact_text: str, threshold: float) -> str:
    """Prompt asking the evaluator for DONE or a QUALITY_SCORE/FEEDBACK pair."""
    return (
        "Compare the current page design with the reference image and evaluate the transformation quality.\n"
        "\n"
        f"DESIGN GOAL: {intent_description or 'Match the reference design aesthetics'}\n"
        "\n"
        "EVALUATION CRITERIA:\n"
        "1. Visual similarity to reference design\n"
        "2. Color scheme accuracy\n"
        "3. Typography matching\n"
        "4. Layout and spacing consistency\n"
        "5. Overall aesthetic appeal\n"
        "\n"
        f"CURRENT CSS APPLIED:\n{artifact_text}\n"
        "\n"
        "Rate the quality from 0.0 to 1.0 and provide specific feedback for improvements.\n"
        f"If quality is above {threshold}, respond with only the word DONE.\n"
        "Otherwise respond exactly as:\n"
        "QUALITY_SCORE: 0.X\n"
        "FEEDBACK: [specific suggestions]"
    )
