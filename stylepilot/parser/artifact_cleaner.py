"""
Artifact Cleaner
================
Turns raw generator output into a stylesheet and checks it is structurally
sane before it is applied. This is not a CSS parser: it only strips markdown
fences and checks braces.
"""
import re
from typing import List, Tuple

_OPEN_FENCE_RE = re.compile(r"```(?:css|scss)?\s*", re.IGNORECASE)
_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


def clean_artifact_response(response: str) -> str:
    """Remove ```css fences and surrounding whitespace from a model reply."""
    if not response:
        return ""
    return _OPEN_FENCE_RE.sub("", response).replace("```", "").strip()


def validate_stylesheet_structure(css: str) -> Tuple[bool, List[str]]:
    """
    Check that a stylesheet has at least one rule block and balanced braces.

    Returns
    -------
    (bool, list[str])
        Validity flag and the list of problems found.
    """
    errors: List[str] = []
    body = _COMMENT_RE.sub("", css or "")

    if "{" not in body or "}" not in body:
        errors.append("Stylesheet appears to be malformed (missing braces)")

    depth = 0
    for ch in body:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                break
    if depth != 0:
        errors.append("Unbalanced stylesheet braces")

    return not errors, errors


def count_rules(css: str) -> int:
    """Number of declaration blocks (closing braces outside comments)."""
    return _COMMENT_RE.sub("", css or "").count("}")
