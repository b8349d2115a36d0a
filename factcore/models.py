"""
Pydantic models for facts, their scheduling state, and the persisted dataset.
"""

from __future__ import annotations

import uuid
from enum import IntEnum
from uuid import UUID
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

DATASET_FORMAT_VERSION = 1


def ensure_utc(ts: datetime) -> datetime:
    """Return ``ts`` as an aware UTC datetime. Naive values are assumed UTC."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        return ts.replace(tzinfo=timezone.utc)
    if ts.tzinfo is not timezone.utc:
        return ts.astimezone(timezone.utc)
    return ts


class FactStage(IntEnum):
    """
    Where a fact is in its review life cycle.
    """

    New = 0
    Learning = 1
    Review = 2
    Relearning = 3


class SchedulingState(BaseModel):
    """
    Per-fact scheduling metadata. Owned by the active scheduling policy and
    replaced, never mutated, when an outcome is recorded.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    stage: FactStage = Field(
        default=FactStage.New,
        description="Review life-cycle stage of the fact.",
    )
    next_eligible: Optional[datetime] = Field(
        default=None,
        description="UTC instant from which the fact is due (None = due now).",
    )
    streak: int = Field(
        default=0,
        ge=0,
        description="Consecutive correct outcomes.",
    )
    penalty: int = Field(
        default=0,
        ge=0,
        description="Number of incorrect outcomes recorded.",
    )
    review_count: int = Field(
        default=0,
        ge=0,
        description="Number of outcomes recorded.",
    )
    last_reviewed: Optional[datetime] = Field(
        default=None,
        description="UTC instant of the last recorded outcome.",
    )
    stability: Optional[float] = Field(
        default=None,
        description="FSRS memory stability (days), if the FSRS policy is used.",
    )
    difficulty: Optional[float] = Field(
        default=None,
        description="FSRS difficulty, if the FSRS policy is used.",
    )
    step: Optional[int] = Field(
        default=None,
        ge=0,
        description="FSRS learning/relearning step, if any.",
    )

    @field_validator("next_eligible", "last_reviewed")
    @classmethod
    def normalize_to_utc(cls, ts: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(ts) if ts is not None else None


class Fact(BaseModel):
    """
    A term/definition pair under review, with its scheduling metadata.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    uuid: UUID = Field(
        default_factory=uuid.uuid4,
        description="Stable identity of the fact. Auto-generated.",
    )
    term: str = Field(
        ...,
        min_length=1,
        description="The prompt shown to the learner.",
    )
    definition: str = Field(
        ...,
        description="The expected answer.",
    )
    scheduling: SchedulingState = Field(
        default_factory=SchedulingState,
        description="Policy-owned scheduling state.",
    )
    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp when the fact was added.",
    )

    @field_validator("term")
    @classmethod
    def term_not_blank(cls, term: str) -> str:
        if not term.strip():
            raise ValueError("term must not be blank")
        return term

    @field_validator("added_at")
    @classmethod
    def normalize_added_at(cls, ts: datetime) -> datetime:
        return ensure_utc(ts)

    def sort_key(self) -> Tuple[str, str]:
        """Ordering used when facts are written out for export."""
        return (self.term, self.definition)

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.term, self.definition)


class FactDataset(BaseModel):
    """
    Everything a storage backend persists: the ordered list of facts.
    """

    model_config = ConfigDict(extra="forbid")

    format_version: int = Field(
        default=DATASET_FORMAT_VERSION,
        ge=1,
        description="Version of the persisted layout.",
    )
    facts: List[Fact] = Field(
        default_factory=list,
        description="Facts in insertion order.",
    )
