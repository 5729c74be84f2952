"""
Reference Artifact Manager
==========================
Validated add/remove of the reference images a run is steered towards.

Rules:
    - MIME type must be in ALLOWED_REFERENCE_TYPES
    - size must not exceed MAX_REFERENCE_BYTES
    - at most MAX_REFERENCE_ARTIFACTS per session
    - ids are generated here and never reused within a manager
    - a rejected add leaves the list untouched
"""
import base64
import logging
import mimetypes
import os
import uuid
from typing import List, Optional, Tuple

from stylepilot.core.config import (
    ALLOWED_REFERENCE_TYPES,
    MAX_REFERENCE_ARTIFACTS,
    MAX_REFERENCE_BYTES,
)
from stylepilot.core.errors import ValidationError
from stylepilot.models.reference_artifact import ReferenceArtifact

logger = logging.getLogger(__name__)


def validate_reference_file(
    mime_type: str,
    size: int,
    max_bytes: int = MAX_REFERENCE_BYTES,
) -> None:
    """Raise ValidationError if the file cannot be used as a reference."""
    if mime_type not in ALLOWED_REFERENCE_TYPES:
        raise ValidationError(
            "Invalid file type. Please use JPG, PNG, GIF, or WebP.",
            details={"mime_type": mime_type},
        )
    if size > max_bytes:
        raise ValidationError(
            f"File size too large. Maximum size is {max_bytes // (1024 * 1024)}MB.",
            details={"size": size, "max_bytes": max_bytes},
        )


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


class ReferenceArtifactManager:
    def __init__(
        self,
        max_bytes: int = MAX_REFERENCE_BYTES,
        max_items: int = MAX_REFERENCE_ARTIFACTS,
    ) -> None:
        self.max_bytes = max_bytes
        self.max_items = max_items
        self._items: List[ReferenceArtifact] = []
        self._issued_ids: set[str] = set()

    @property
    def items(self) -> Tuple[ReferenceArtifact, ...]:
        return tuple(self._items)

    def _new_id(self) -> str:
        while True:
            candidate = f"ref_{uuid.uuid4().hex[:12]}"
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate

    def add(self, name: str, data: bytes, mime_type: str) -> ReferenceArtifact:
        """
        Validate and append a reference image.

        Raises
        ------
        ValidationError
            Wrong type, too large, or the per-session limit is reached.
        """
        mime_type = (mime_type or "").lower()
        validate_reference_file(mime_type, len(data), self.max_bytes)
        if len(self._items) >= self.max_items:
            raise ValidationError(
                f"At most {self.max_items} reference images are allowed.",
                details={"count": len(self._items)},
            )

        artifact = ReferenceArtifact(
            id=self._new_id(),
            url=to_data_url(data, mime_type),
            data=data,
            name=name,
            size=len(data),
            mime_type=mime_type,
        )
        self._items.append(artifact)
        logger.info("Added reference artifact %s (%s, %d bytes)", artifact.id, name, artifact.size)
        return artifact

    def add_file(self, path: str) -> ReferenceArtifact:
        """Read an image from disk; the MIME type is guessed from the extension."""
        mime_type, _ = mimetypes.guess_type(path)
        size = os.path.getsize(path)
        # Reject before reading a huge or non-image file into memory
        validate_reference_file(mime_type or "application/octet-stream", size, self.max_bytes)
        with open(path, "rb") as f:
            data = f.read()
        return self.add(os.path.basename(path), data, mime_type or "")

    def remove(self, artifact_id: str) -> Optional[ReferenceArtifact]:
        """Remove by id. Returns the removed artifact, or None when absent."""
        for index, artifact in enumerate(self._items):
            if artifact.id == artifact_id:
                del self._items[index]
                return artifact
        logger.info("Reference artifact %s not found, nothing removed", artifact_id)
        return None

    def get(self, artifact_id: str) -> Optional[ReferenceArtifact]:
        return next((a for a in self._items if a.id == artifact_id), None)

    def replace_all(self, artifacts: List[ReferenceArtifact]) -> None:
        """Adopt an existing list (e.g. from a RunConfig), keeping its ids reserved."""
        self._items = list(artifacts)
        self._issued_ids.update(a.id for a in artifacts)

    def clear(self) -> None:
        self._items = []
