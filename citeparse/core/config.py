"""Extraction limits: YAML loader and Pydantic models."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

# ── Defaults ─────────────────────────────────────────────────────────

MAX_REGEX_INPUT_LENGTH = 100_000
MAX_FULL_EXPANSION = 1000
SAMPLE_COUNT = 50
MAX_TRAVERSAL_DEPTH = 50
ATTACHMENT_ID_LENGTH = 20


# ── Limits ───────────────────────────────────────────────────────────


class ExtractionLimits(BaseModel):
    """Ceilings that keep every extraction call bounded."""

    max_input_length: int = Field(
        default=MAX_REGEX_INPUT_LENGTH, ge=1,
        description="Longest text any pattern is applied to",
    )
    max_full_expansion: int = Field(
        default=MAX_FULL_EXPANSION, ge=1,
        description="Largest numeric range expanded point by point",
    )
    sample_count: int = Field(
        default=SAMPLE_COUNT, ge=2,
        description="Points kept when a range is sampled instead of expanded",
    )
    max_depth: int = Field(
        default=MAX_TRAVERSAL_DEPTH, ge=1,
        description="Deepest nesting level visited when discovering JSON citations",
    )
    attachment_id_length: int = Field(
        default=ATTACHMENT_ID_LENGTH, ge=1,
        description="Length of a well-formed attachment id",
    )


class ExtractionConfig(BaseModel):
    """Top-level extraction configuration."""

    limits: ExtractionLimits = Field(default_factory=ExtractionLimits)
    strict_citation_ids: bool = Field(
        default=True,
        description="Drop deferred citation objects without a numeric id",
    )


DEFAULT_LIMITS = ExtractionLimits()


# ── Loading ──────────────────────────────────────────────────────────


def load_extraction_config(path: str | Path) -> ExtractionConfig:
    """Load a YAML extraction config from disk and return a validated model."""
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f)
    return ExtractionConfig.model_validate(raw or {})
