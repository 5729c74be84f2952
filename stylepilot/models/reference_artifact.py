"""
Reference Artifact Model
========================
Pydantic model for a user-supplied reference image defining the desired end state.

Fields:
    id          — unique per session, generated at add-time ("ref_<hex>")
    url         — data URL (data:<mime>;base64,<payload>) sent to vision models
    data        — raw image bytes
    name        — original file name
    size        — byte length of data (<= MAX_REFERENCE_BYTES)
    mime_type   — one of ALLOWED_REFERENCE_TYPES

Instances are never mutated; removal is the only way to drop one.
Type and size limits are checked here as well as in the manager, so an
artifact built directly (e.g. inside a config update) obeys the same rules.
"""
from pydantic import BaseModel, ConfigDict, field_validator

from stylepilot.core.config import ALLOWED_REFERENCE_TYPES, MAX_REFERENCE_BYTES


class ReferenceArtifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    data: bytes = b""
    name: str
    size: int
    mime_type: str

    @field_validator("mime_type")
    @classmethod
    def check_mime_type(cls, v: str) -> str:
        if v not in ALLOWED_REFERENCE_TYPES:
            raise ValueError(f"unsupported reference image type: {v!r}")
        return v

    @field_validator("size")
    @classmethod
    def check_size(cls, v: int) -> int:
        if v < 0 or v > MAX_REFERENCE_BYTES:
            raise ValueError(f"reference image size must be between 0 and {MAX_REFERENCE_BYTES} bytes")
        return v

    @property
    def base64_payload(self) -> str:
        """The base64 part of the data URL (what the LLM APIs expect)."""
        _, _, payload = self.url.partition("base64,")
        return payload
