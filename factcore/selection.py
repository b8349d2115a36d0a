"""
Strategies that pick the next fact to present.
"""

import logging
import random
from abc import ABC, abstractmethod
from datetime import datetime
from typing import NamedTuple, Optional

from .fact_store import FactStore
from .models import Fact
from .scheduler import BaseSchedulingPolicy

logger = logging.getLogger(__name__)


class Selection(NamedTuple):
    fact: Fact
    was_eligible: bool


class BaseSelectionStrategy(ABC):
    """
    Picks the next fact to review. Eligible facts come first; when nothing is
    due the strategy still returns some fact, flagged ``was_eligible=False``,
    so there is always material to review. An empty store yields None.
    """

    @abstractmethod
    def select(
        self, store: FactStore, policy: BaseSchedulingPolicy, now: datetime
    ) -> Optional[Selection]:
        pass


class InsertionOrderSelection(BaseSelectionStrategy):
    """
    Deterministic selection.

    The first eligible fact in insertion order wins. Without an eligible fact,
    the one that becomes due soonest is chosen, ties going to the earlier
    inserted fact.
    """

    def select(
        self, store: FactStore, policy: BaseSchedulingPolicy, now: datetime
    ) -> Optional[Selection]:
        if len(store) == 0:
            return None

        for fact in store:
            if policy.is_eligible(fact.scheduling, now):
                return Selection(fact.model_copy(deep=True), True)

        # Nothing is due; next_eligible is set on every ineligible fact.
        soonest = min(
            store,
            key=lambda fact: fact.scheduling.next_eligible or now,
        )
        return Selection(soonest.model_copy(deep=True), False)


class SeededRandomSelection(BaseSelectionStrategy):
    """
    Uniform choice among eligible facts, or among all facts when none is due.
    The sequence of choices is reproducible for a given seed.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def select(
        self, store: FactStore, policy: BaseSchedulingPolicy, now: datetime
    ) -> Optional[Selection]:
        facts = list(store)
        if not facts:
            return None

        eligible = [f for f in facts if policy.is_eligible(f.scheduling, now)]
        if eligible:
            return Selection(self._rng.choice(eligible).model_copy(deep=True), True)
        return Selection(self._rng.choice(facts).model_copy(deep=True), False)
