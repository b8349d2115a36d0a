import pytest
from datetime import datetime, timedelta

from factcore.fact_store import FactStore
from factcore.models import Fact, SchedulingState
from factcore.selection import InsertionOrderSelection, SeededRandomSelection


def _not_due(fact: Fact, until: datetime) -> Fact:
    return fact.model_copy(
        update={"scheduling": SchedulingState(next_eligible=until)}
    )


class TestInsertionOrderSelection:
    def test_empty_store_returns_none(self, policy, now):
        assert InsertionOrderSelection().select(FactStore(), policy, now) is None

    def test_first_eligible_fact_wins(
        self, policy, now, sample_fact1, sample_fact2, sample_fact3
    ):
        store = FactStore(
            [_not_due(sample_fact1, now + timedelta(hours=1)), sample_fact2, sample_fact3]
        )
        selection = InsertionOrderSelection().select(store, policy, now)
        assert selection.fact.uuid == sample_fact2.uuid
        assert selection.was_eligible is True

    def test_fallback_picks_soonest_due(
        self, policy, now, sample_fact1, sample_fact2, sample_fact3
    ):
        store = FactStore(
            [
                _not_due(sample_fact1, now + timedelta(days=3)),
                _not_due(sample_fact2, now + timedelta(hours=1)),
                _not_due(sample_fact3, now + timedelta(days=1)),
            ]
        )
        selection = InsertionOrderSelection().select(store, policy, now)
        assert selection.fact.uuid == sample_fact2.uuid
        assert selection.was_eligible is False

    def test_fallback_ties_go_to_earlier_fact(
        self, policy, now, sample_fact1, sample_fact2
    ):
        until = now + timedelta(hours=1)
        store = FactStore([_not_due(sample_fact1, until), _not_due(sample_fact2, until)])
        selection = InsertionOrderSelection().select(store, policy, now)
        assert selection.fact.uuid == sample_fact1.uuid

    def test_selection_is_a_copy(self, policy, now, sample_fact1):
        store = FactStore([sample_fact1])
        selection = InsertionOrderSelection().select(store, policy, now)
        selection.fact.definition = "changed"
        assert store.get(0).definition == "hello"


class TestSeededRandomSelection:
    def test_empty_store_returns_none(self, policy, now):
        assert SeededRandomSelection(seed=1).select(FactStore(), policy, now) is None

    def test_same_seed_same_sequence(self, policy, now):
        facts = [Fact(term=f"t{i}", definition=f"d{i}") for i in range(10)]
        store = FactStore(facts)
        first = SeededRandomSelection(seed=42)
        second = SeededRandomSelection(seed=42)
        picks_a = [first.select(store, policy, now).fact.uuid for _ in range(20)]
        picks_b = [second.select(store, policy, now).fact.uuid for _ in range(20)]
        assert picks_a == picks_b

    def test_prefers_eligible(self, policy, now, sample_fact1, sample_fact2):
        store = FactStore([_not_due(sample_fact1, now + timedelta(days=1)), sample_fact2])
        strategy = SeededRandomSelection(seed=7)
        for _ in range(10):
            selection = strategy.select(store, policy, now)
            assert selection.fact.uuid == sample_fact2.uuid
            assert selection.was_eligible

    def test_falls_back_when_nothing_due(self, policy, now, sample_fact1):
        store = FactStore([_not_due(sample_fact1, now + timedelta(days=1))])
        selection = SeededRandomSelection(seed=3).select(store, policy, now)
        assert selection.fact.uuid == sample_fact1.uuid
        assert selection.was_eligible is False
