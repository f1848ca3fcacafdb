"""Shared data models for citation parsers."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from citeparse.core.config import DEFAULT_LIMITS
from citeparse.core.ranges import expand_range


class Timestamps(BaseModel):
    """Start/end of an audio or video citation. Times are opaque strings."""

    start_time: Optional[str] = None
    end_time: Optional[str] = None


class Citation(BaseModel):
    """A single citation extracted from model output."""

    attachment_id: Optional[str] = None
    page_number: Optional[int] = None
    start_page_id: Optional[str] = Field(
        default=None, description="Canonical page_number_<N>_index_<I> locator"
    )
    full_phrase: Optional[str] = Field(
        default=None, description="Verbatim quote; citations without it are discarded"
    )
    anchor_text: Optional[str] = Field(
        default=None, description="1-3 word span within full_phrase"
    )
    line_ids: Optional[list[int]] = None
    timestamps: Optional[Timestamps] = None
    reasoning: Optional[str] = None
    value: Optional[str] = None
    citation_number: Optional[int] = None
    before_cite: Optional[str] = Field(default=None, exclude=True)
    after_cite: Optional[str] = Field(default=None, exclude=True)

    @field_validator("line_ids")
    @classmethod
    def sorted_unique_line_ids(cls, v: Optional[list[int]]) -> Optional[list[int]]:
        if not v:
            return None
        return sorted(set(v))


CitationRecord = dict[str, Citation]


# ── Deferred JSON dialect ────────────────────────────────────────────


class CitationData(BaseModel):
    """One entry of a deferred citation data block, with full key names."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    attachment_id: Optional[str] = None
    reasoning: Optional[str] = None
    full_phrase: Optional[str] = None
    anchor_text: Optional[str] = None
    page_id: Optional[str] = None
    line_ids: Optional[list[int]] = None
    timestamps: Optional[Timestamps] = None

    @field_validator("page_id", mode="before")
    @classmethod
    def page_id_as_string(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("line_ids", mode="before")
    @classmethod
    def line_ids_from_expression(cls, v: Any, info: ValidationInfo) -> Any:
        if isinstance(v, str):
            limits = (info.context or {}).get("limits") or DEFAULT_LIMITS
            return expand_range(
                v,
                limits.max_full_expansion,
                limits.sample_count,
                limits.max_input_length,
            )
        if isinstance(v, int) and not isinstance(v, bool):
            return [v]
        return v


class ParsedCitationResponse(BaseModel):
    """Result of splitting a response into visible text and citation data."""

    visible_text: str
    citations: list[CitationData] = Field(default_factory=list)
    citation_map: dict[int, CitationData] = Field(default_factory=dict)
    success: bool
    error: Optional[str] = None
    repairs: list[str] = Field(default_factory=list)
