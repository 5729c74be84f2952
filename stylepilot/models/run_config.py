"""
Run Configuration Model
=======================
Pydantic models for the inputs of one refinement run.

Fields:
    reference_artifacts — images defining the desired end state (>= 1 to start,
                          ids unique)
    intent_description  — free-text design goal passed to the prompts
    max_iterations      — generate+apply pairs allowed (1..MAX_ITERATIONS_CEILING)
    quality_threshold   — acceptance score in [0, 1]
    options             — feature flags forwarded to the generation prompt

The model is frozen. Edits go through with_updates(), which re-validates and
returns a new instance; the orchestrator only allows that while no run is active.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stylepilot.core.config import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_QUALITY_THRESHOLD,
    MAX_ITERATIONS_CEILING,
)
from .reference_artifact import ReferenceArtifact


class RunOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    preserve_existing: bool = False
    force_overrides: bool = False
    generate_responsive_variants: bool = True
    optimize_for_size: bool = False


class RunConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference_artifacts: List[ReferenceArtifact] = []
    intent_description: str = ""
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    quality_threshold: float = Field(default=DEFAULT_QUALITY_THRESHOLD, ge=0.0, le=1.0)
    options: RunOptions = RunOptions()

    @field_validator("max_iterations")
    @classmethod
    def cap_iterations(cls, v: int) -> int:
        if v > MAX_ITERATIONS_CEILING:
            raise ValueError(f"max_iterations cannot exceed {MAX_ITERATIONS_CEILING}")
        return v

    @field_validator("reference_artifacts")
    @classmethod
    def unique_reference_ids(cls, v: List[ReferenceArtifact]) -> List[ReferenceArtifact]:
        ids = [a.id for a in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"duplicate reference artifact ids: {', '.join(duplicates)}")
        return v

    def with_updates(self, updates: Dict[str, Any]) -> "RunConfig":
        """Return a validated copy with ``updates`` merged in."""
        data = self.model_dump()
        # Keep artifact instances as-is; dumping them to dicts loses nothing but identity.
        data["reference_artifacts"] = list(self.reference_artifacts)
        if "options" in updates and isinstance(updates["options"], dict):
            merged = self.options.model_dump()
            merged.update(updates["options"])
            updates = {**updates, "options": merged}
        data.update(updates)
        return RunConfig.model_validate(data)
