"""
Conversion between Fact models and rows of the DuckDB ``facts`` table.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import Fact, FactStage, SchedulingState

FACT_COLUMNS: Tuple[str, ...] = (
    "position",
    "uuid",
    "term",
    "definition",
    "added_at",
    "stage",
    "next_eligible",
    "streak",
    "penalty",
    "review_count",
    "last_reviewed",
    "stability",
    "difficulty",
    "step",
)

_SCHEDULING_FIELDS = (
    "next_eligible",
    "streak",
    "penalty",
    "review_count",
    "last_reviewed",
    "stability",
    "difficulty",
    "step",
)


def _to_naive_utc(ts: Optional[datetime]) -> Optional[datetime]:
    """TIMESTAMP columns hold naive UTC values."""
    if ts is None:
        return None
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.replace(tzinfo=None)


def facts_to_db_params_list(facts: Sequence[Fact]) -> List[Tuple]:
    """
    Convert facts into parameter tuples in ``FACT_COLUMNS`` order; the
    position column records each fact's place in the sequence.
    """
    result = []
    for position, fact in enumerate(facts):
        state = fact.scheduling
        result.append(
            (
                position,
                fact.uuid,
                fact.term,
                fact.definition,
                _to_naive_utc(fact.added_at),
                state.stage.name,
                _to_naive_utc(state.next_eligible),
                state.streak,
                state.penalty,
                state.review_count,
                _to_naive_utc(state.last_reviewed),
                state.stability,
                state.difficulty,
                state.step,
            )
        )
    return result


def db_row_to_fact(row_dict: Dict[str, Any]) -> Fact:
    """
    Build a Fact from a ``facts`` row.

    Raises:
        MarshallingError: If the row does not validate into a Fact.
    """
    data = row_dict.copy()
    data.pop("position", None)
    try:
        stage = FactStage[data.pop("stage")]
    except KeyError as e:
        raise MarshallingError(
            f"Unknown stage {e} for fact {data.get('uuid')}",
            original_exception=e,
        ) from e

    scheduling = {name: data.pop(name, None) for name in _SCHEDULING_FIELDS}
    scheduling = {k: v for k, v in scheduling.items() if v is not None}

    try:
        return Fact(
            scheduling=SchedulingState(stage=stage, **scheduling),
            **data,
        )
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse fact from DB row: {e}", original_exception=e
        ) from e
