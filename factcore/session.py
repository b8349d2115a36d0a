"""
This module defines the SessionController class, the operational API of the
engine. It owns the in-memory FactStore, the injected scheduling policy and
selection strategy, and a Storage handle used at load and save points.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple
from uuid import UUID

from .exceptions import (
    DuplicateFactError,
    MarshallingError,
    SequencingError,
    StorageError,
)
from .fact_store import FactStore
from .models import Fact, FactDataset
from .scheduler import BaseSchedulingPolicy, GraduatedIntervalPolicy
from .selection import BaseSelectionStrategy, InsertionOrderSelection, Selection
from .storage.base import Storage

logger = logging.getLogger(__name__)


class Outstanding(NamedTuple):
    """The fact currently presented and awaiting an outcome."""

    fact_uuid: UUID
    was_eligible: bool


class SessionController:
    """
    Drives review sessions over a fact collection.

    The controller is either Idle or has exactly one fact outstanding. It is
    meant to be owned by a single caller: call ``load()`` once before anything
    else, ``save()`` whenever changes should become durable, and
    ``shutdown()`` at the end.
    """

    def __init__(
        self,
        storage: Storage,
        policy: Optional[BaseSchedulingPolicy] = None,
        selection: Optional[BaseSelectionStrategy] = None,
    ):
        """
        Parameters:
            storage (Storage): Persistence backend read by ``load`` and written
                by ``save``.
            policy (BaseSchedulingPolicy): Scheduling policy; defaults to
                GraduatedIntervalPolicy.
            selection (BaseSelectionStrategy): Strategy picking the next fact;
                defaults to InsertionOrderSelection.
        """
        self.storage = storage
        self.policy = policy if policy is not None else GraduatedIntervalPolicy()
        self.selection = (
            selection if selection is not None else InsertionOrderSelection()
        )
        self.store = FactStore()
        self._outstanding: Optional[Outstanding] = None
        self._is_shut_down = False

    def __enter__(self) -> "SessionController":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return now if now is not None else datetime.now(timezone.utc)

    def _ensure_running(self) -> None:
        if self._is_shut_down:
            raise SequencingError("The session controller has been shut down.")

    # --- Session state ---

    @property
    def current(self) -> Optional[Outstanding]:
        return self._outstanding

    @property
    def is_outstanding(self) -> bool:
        return self._outstanding is not None

    @property
    def is_shut_down(self) -> bool:
        return self._is_shut_down

    def get_new_fact(self, now: Optional[datetime] = None) -> Optional[Selection]:
        """
        Select the next fact to review and mark it outstanding.

        A fact that is still outstanding is abandoned without recording an
        outcome. Returns None, leaving the controller Idle, when the store is
        empty.
        """
        self._ensure_running()
        if self._outstanding is not None:
            logger.debug(
                f"Abandoning outstanding fact {self._outstanding.fact_uuid} "
                "for a new selection."
            )
            self._outstanding = None

        selection = self.selection.select(self.store, self.policy, self._now(now))
        if selection is None:
            logger.info("No facts to review; the store is empty.")
            return None

        self._outstanding = Outstanding(
            selection.fact.uuid, selection.was_eligible
        )
        logger.debug(
            f"Presenting fact {selection.fact.uuid} "
            f"(eligible={selection.was_eligible})"
        )
        return selection

    def finish_current_fact(
        self, outcome: Optional[bool], now: Optional[datetime] = None
    ) -> Optional[Fact]:
        """
        Resolve the outstanding fact.

        Parameters:
            outcome: True/False records a correct/incorrect answer; None
                abandons the fact without recording anything.
            now: Instant the outcome is recorded at; defaults to the current
                UTC time.

        Returns:
            A copy of the updated fact, or None when the fact was abandoned.

        Raises:
            SequencingError: If no fact is outstanding.
        """
        self._ensure_running()
        if self._outstanding is None:
            raise SequencingError(
                "finish_current_fact called with no fact outstanding."
            )

        outstanding, self._outstanding = self._outstanding, None
        if outcome is None:
            logger.debug(f"Fact {outstanding.fact_uuid} abandoned.")
            return None

        index = self.store.index_of(outstanding.fact_uuid)
        if index is None:
            raise SequencingError(
                f"Outstanding fact {outstanding.fact_uuid} is no longer stored."
            )

        ts = self._now(now)
        fact = self.store.get(index)
        new_state = self.policy.apply_outcome(fact.scheduling, ts, outcome)
        updated = self.store.replace_scheduling(outstanding.fact_uuid, new_state)
        logger.info(
            f"Recorded {'correct' if outcome else 'incorrect'} answer for "
            f"'{fact.term}'; next eligible {new_state.next_eligible}"
        )
        return updated

    # --- Reads ---

    def count_eligible_now(self, now: Optional[datetime] = None) -> int:
        return self.store.count_eligible(self.policy, self._now(now))

    def snapshot_eligible(self, now: Optional[datetime] = None) -> List[Fact]:
        return self.store.snapshot_eligible(self.policy, self._now(now))

    def snapshot_all(self) -> List[Fact]:
        return self.store.snapshot_all()

    def stats(self, now: Optional[datetime] = None) -> Dict[str, object]:
        """
        Summary counts for display.

        Returns:
            dict with "total_facts", "eligible_facts", "reviews" (sum of
            recorded outcomes), "penalties" and "stages" (stage name -> count).
        """
        facts = self.store.snapshot_all()
        return {
            "total_facts": len(facts),
            "eligible_facts": self.count_eligible_now(now),
            "reviews": sum(f.scheduling.review_count for f in facts),
            "penalties": sum(f.scheduling.penalty for f in facts),
            "stages": dict(Counter(f.scheduling.stage.name for f in facts)),
        }

    # --- Mutations ---

    def _new_fact(self, term: str, definition: str) -> Fact:
        return Fact(
            term=term,
            definition=definition,
            scheduling=self.policy.initial_state(),
        )

    def add_fact(self, term: str, definition: str) -> Fact:
        """Add a new, immediately eligible fact and return a copy of it."""
        self._ensure_running()
        fact = self._new_fact(term, definition)
        position = self.store.add(fact)
        logger.debug(f"Added fact '{term}' at position {position}.")
        return fact.model_copy(deep=True)

    def add_facts(self, pairs: Iterable[Tuple[str, str]]) -> List[Fact]:
        """Add several (term, definition) pairs in order."""
        self._ensure_running()
        facts = [self._new_fact(term, definition) for term, definition in pairs]
        self.store.add_many(facts)
        logger.info(f"Added {len(facts)} fact(s).")
        return [fact.model_copy(deep=True) for fact in facts]

    def delete_at_index(self, index: int) -> Fact:
        """
        Delete the fact at ``index`` (a position in ``snapshot_all()``).

        Raises:
            FactIndexError: For a stale or invalid index; nothing is deleted.
        """
        self._ensure_running()
        removed = self.store.remove_at(index)
        if self._outstanding and self._outstanding.fact_uuid == removed.uuid:
            logger.debug("Deleted the outstanding fact; session is idle.")
            self._outstanding = None
        logger.info(f"Deleted fact '{removed.term}' at position {index}.")
        return removed

    def clear(self) -> None:
        """Empty the in-memory store. Storage is untouched until ``save()``."""
        self._ensure_running()
        self.store.clear()
        self._outstanding = None
        logger.info("Cleared all facts from memory.")

    # --- Persistence ---

    def load(self) -> int:
        """
        Replace the whole in-memory store with the dataset from storage.

        Returns:
            The number of facts loaded.

        Raises:
            StorageError: Propagated from the backend; memory is unchanged.
        """
        self._ensure_running()
        try:
            dataset = self.storage.read_db()
        except StorageError:
            logger.exception("Failed to load facts from storage")
            raise
        try:
            self.store.replace_all(dataset.facts)
        except DuplicateFactError as e:
            raise MarshallingError(
                f"Stored dataset is inconsistent: {e}", original_exception=e
            ) from e
        self._outstanding = None
        logger.info(f"Loaded {len(self.store)} fact(s) from storage.")
        return len(self.store)

    def save(self) -> None:
        """
        Write the whole in-memory store to storage.

        Raises:
            StorageError: Propagated from the backend; changes stay in memory.
        """
        self._ensure_running()
        dataset = FactDataset(facts=self.store.snapshot_all())
        try:
            self.storage.write_db(dataset)
        except StorageError:
            logger.exception("Failed to save facts to storage")
            raise
        logger.info(f"Saved {len(dataset.facts)} fact(s) to storage.")

    def shutdown(self) -> None:
        """
        Retire the controller and let storage release its resources. Safe to
        call more than once. Does not save.
        """
        if self._is_shut_down:
            return
        self._is_shut_down = True
        self._outstanding = None
        self.storage.exit_application()
        logger.info("Session controller shut down.")
