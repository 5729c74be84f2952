"""
Snapshot Model
==============
Immutable capture of the target's state, returned by the Collector and Applier.

Fields:
    visual                — screenshot image bytes (may be empty when no capture exists)
    visual_mime_type      — MIME type of visual
    structural_summary    — element tree: {"tag", "classes", "text", "children": [...]}
    current_artifact_text — the stylesheet currently applied to the target
    computed_style_map    — selector -> {property: value}
    metadata              — free-form (title, url, timestamp, viewport, ...)
"""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    visual: bytes = b""
    visual_mime_type: str = "image/png"
    structural_summary: Dict[str, Any] = {}
    current_artifact_text: str = ""
    computed_style_map: Dict[str, Dict[str, str]] = {}
    metadata: Dict[str, Any] = {}

    @property
    def has_visual(self) -> bool:
        return bool(self.visual)
