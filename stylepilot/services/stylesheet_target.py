"""
Stylesheet File Target
======================
Built-in Collector + Applier driving a stylesheet file on local disk.

collect():
    - reads the current stylesheet (missing file → empty stylesheet)
    - reads the optional page markup into the structural summary
    - reads the optional screenshot file as the visual capture

apply():
    - rejects stylesheets with missing or unbalanced braces (success=False)
    - writes atomically: temp file in the same directory, then os.replace
    - returns a freshly collected snapshot

The screenshot file is whatever an external renderer last wrote there; this
target never renders pages itself.
"""
import logging
import mimetypes
import os
import re
import tempfile
import time
from html.parser import HTMLParser
from typing import Any, Dict, List, Optional

from stylepilot.core.config import SCREENSHOT_PATH, TARGET_MARKUP_PATH, TARGET_STYLESHEET_PATH
from stylepilot.core.errors import CollectionError
from stylepilot.models.apply_result import ApplyResult
from stylepilot.models.snapshot import Snapshot
from stylepilot.parser.artifact_cleaner import count_rules, validate_stylesheet_structure
from stylepilot.state.cancellation import CancellationToken

logger = logging.getLogger(__name__)

_VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
})
_SKIPPED_TAGS = frozenset({"script", "style", "head", "title", "noscript"})
_RULE_RE = re.compile(r"([^{}@]+)\{([^{}]*)\}")
_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


# ---------------------------------------------------------------------------
# Markup → structural summary
# ---------------------------------------------------------------------------
class _StructureBuilder(HTMLParser):
    """Builds the {"tag", "classes", "text", "attributes", "children"} tree."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root: Dict[str, Any] = {"tag": "document", "classes": [], "text": "", "attributes": {}, "children": []}
        self._stack: List[Dict[str, Any]] = [self.root]
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _SKIPPED_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth:
            return
        attributes = {k: v or "" for k, v in attrs}
        node = {
            "tag": tag,
            "classes": (attributes.pop("class", "") or "").split(),
            "text": "",
            "attributes": {k: v for k, v in attributes.items() if k in ("id", "role", "type", "href")},
            "children": [],
        }
        self._stack[-1]["children"].append(node)
        if tag not in _VOID_TAGS:
            self._stack.append(node)

    def handle_endtag(self, tag):
        if tag in _SKIPPED_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if self._skip_depth:
            return
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index]["tag"] == tag:
                del self._stack[index:]
                break

    def handle_data(self, data):
        if self._skip_depth:
            return
        text = " ".join(data.split())
        if text:
            node = self._stack[-1]
            node["text"] = f"{node['text']} {text}".strip()


def parse_markup(markup: str) -> Dict[str, Any]:
    builder = _StructureBuilder()
    builder.feed(markup)
    builder.close()
    return {"children": builder.root["children"]}


def declared_style_map(css: str) -> Dict[str, Dict[str, str]]:
    """selector → {property: value} for top-level rules (at-rules are skipped)."""
    styles: Dict[str, Dict[str, str]] = {}
    for selector_group, body in _RULE_RE.findall(_COMMENT_RE.sub("", css or "")):
        declarations = {}
        for declaration in body.split(";"):
            prop, sep, value = declaration.partition(":")
            if sep and prop.strip():
                declarations[prop.strip().lower()] = value.strip()
        for selector in selector_group.split(","):
            selector = selector.strip()
            if selector:
                styles.setdefault(selector, {}).update(declarations)
    return styles


# ---------------------------------------------------------------------------
# Target
# ---------------------------------------------------------------------------
class StylesheetFileTarget:
    """
    Parameters
    ----------
    stylesheet_path : str
        File the generated stylesheet is written to.
    markup_path : str, optional
        HTML file whose structure the stylesheet is meant to style.
    screenshot_path : str, optional
        Image file used as the visual capture of the page.
    """

    def __init__(
        self,
        stylesheet_path: str = TARGET_STYLESHEET_PATH,
        markup_path: Optional[str] = TARGET_MARKUP_PATH or None,
        screenshot_path: Optional[str] = SCREENSHOT_PATH or None,
    ) -> None:
        self.stylesheet_path = os.path.abspath(stylesheet_path)
        self.markup_path = markup_path
        self.screenshot_path = screenshot_path

    # -------------------------------------------------------------------
    # Collector
    # -------------------------------------------------------------------
    async def collect(self, token: CancellationToken) -> Snapshot:
        token.raise_if_cancelled()
        try:
            return self._snapshot()
        except (OSError, UnicodeDecodeError) as e:
            raise CollectionError(
                f"Failed to read target files: {e}",
                details={"stylesheet_path": self.stylesheet_path},
            ) from e

    def _snapshot(self) -> Snapshot:
        css = ""
        if os.path.exists(self.stylesheet_path):
            with open(self.stylesheet_path, "r", encoding="utf-8") as f:
                css = f.read()

        structure: Dict[str, Any] = {}
        if self.markup_path:
            with open(self.markup_path, "r", encoding="utf-8") as f:
                structure = parse_markup(f.read())

        visual = b""
        visual_mime_type = "image/png"
        if self.screenshot_path and os.path.exists(self.screenshot_path):
            with open(self.screenshot_path, "rb") as f:
                visual = f.read()
            visual_mime_type = mimetypes.guess_type(self.screenshot_path)[0] or visual_mime_type

        return Snapshot(
            visual=visual,
            visual_mime_type=visual_mime_type,
            structural_summary=structure,
            current_artifact_text=css,
            computed_style_map=declared_style_map(css),
            metadata={
                "stylesheet_path": self.stylesheet_path,
                "markup_path": self.markup_path,
                "timestamp": time.time() * 1000,
            },
        )

    # -------------------------------------------------------------------
    # Applier
    # -------------------------------------------------------------------
    async def apply(self, artifact_text: str, token: CancellationToken) -> ApplyResult:
        token.raise_if_cancelled()

        valid, errors = validate_stylesheet_structure(artifact_text)
        if not valid:
            logger.warning("Rejected stylesheet: %s", "; ".join(errors))
            return ApplyResult(success=False, error="; ".join(errors))

        try:
            self._write_atomic(artifact_text)
            snapshot = self._snapshot()
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to apply stylesheet to %s: %s", self.stylesheet_path, e)
            return ApplyResult(success=False, error=f"Failed to write stylesheet: {e}")

        rules = count_rules(artifact_text)
        logger.info("Applied %d rules to %s", rules, self.stylesheet_path)
        return ApplyResult(success=True, snapshot_after=snapshot, applied_rules=rules)

    def _write_atomic(self, text: str) -> None:
        directory = os.path.dirname(self.stylesheet_path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".pilot-", suffix=".css")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.stylesheet_path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
