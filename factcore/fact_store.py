"""
The in-memory dataset: an ordered collection of facts.
"""

import logging
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Sequence
from uuid import UUID

from .exceptions import DuplicateFactError, FactIndexError
from .models import Fact, SchedulingState
from .scheduler import BaseSchedulingPolicy

logger = logging.getLogger(__name__)


class FactStore:
    """
    Ordered collection of facts, addressed by position.

    Insertion order is preserved and positions are dense, so deleting the fact
    at position ``i`` shifts every later fact down by one. Snapshots are deep
    copies; callers never get a handle on the stored facts.
    """

    def __init__(self, facts: Optional[Iterable[Fact]] = None):
        self._facts: List[Fact] = []
        if facts is not None:
            self.add_many(facts)

    def __len__(self) -> int:
        return len(self._facts)

    def __iter__(self) -> Iterator[Fact]:
        return iter(self._facts)

    def _uuids(self) -> set:
        return {fact.uuid for fact in self._facts}

    def add(self, fact: Fact) -> int:
        """
        Append a fact and return its position.

        Raises:
            DuplicateFactError: If a fact with the same uuid is already stored.
        """
        if fact.uuid in self._uuids():
            raise DuplicateFactError(
                f"Fact {fact.uuid} is already in the store."
            )
        self._facts.append(fact)
        return len(self._facts) - 1

    def add_many(self, facts: Iterable[Fact]) -> List[int]:
        """
        Append several facts in order. Either all of them are added or, when
        any uuid collides with the store or with another fact of the batch,
        none is.
        """
        batch = list(facts)
        seen = self._uuids()
        for fact in batch:
            if fact.uuid in seen:
                raise DuplicateFactError(
                    f"Fact {fact.uuid} is already in the store or repeated "
                    "in the batch."
                )
            seen.add(fact.uuid)
        start = len(self._facts)
        self._facts.extend(batch)
        return list(range(start, start + len(batch)))

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._facts):
            raise FactIndexError(index, len(self._facts))

    def get(self, index: int) -> Fact:
        """Return a copy of the fact at ``index``."""
        self._check_index(index)
        return self._facts[index].model_copy(deep=True)

    def index_of(self, fact_uuid: UUID) -> Optional[int]:
        for index, fact in enumerate(self._facts):
            if fact.uuid == fact_uuid:
                return index
        return None

    def remove_at(self, index: int) -> Fact:
        """
        Remove and return the fact at ``index``.

        Raises:
            FactIndexError: If ``index`` is negative or past the end. The store
                is left unchanged.
        """
        self._check_index(index)
        return self._facts.pop(index)

    def replace_scheduling(
        self, fact_uuid: UUID, state: SchedulingState
    ) -> Optional[Fact]:
        """Swap in a new scheduling state. Returns a copy of the updated fact,
        or None if no fact has that uuid."""
        index = self.index_of(fact_uuid)
        if index is None:
            return None
        self._facts[index].scheduling = state
        return self._facts[index].model_copy(deep=True)

    def snapshot_all(self) -> List[Fact]:
        return [fact.model_copy(deep=True) for fact in self._facts]

    def snapshot_eligible(
        self, policy: BaseSchedulingPolicy, now: datetime
    ) -> List[Fact]:
        return [
            fact.model_copy(deep=True)
            for fact in self._facts
            if policy.is_eligible(fact.scheduling, now)
        ]

    def count_eligible(self, policy: BaseSchedulingPolicy, now: datetime) -> int:
        return sum(
            1 for fact in self._facts if policy.is_eligible(fact.scheduling, now)
        )

    def clear(self) -> None:
        logger.debug(f"Clearing {len(self._facts)} fact(s) from the store.")
        self._facts = []

    def replace_all(self, facts: Sequence[Fact]) -> None:
        """Swap the whole content for ``facts``. Validates before replacing."""
        replacement = FactStore(facts)
        self._facts = replacement._facts
