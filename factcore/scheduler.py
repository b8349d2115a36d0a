# factcore/scheduler.py

"""
Defines the BaseSchedulingPolicy abstract class and the two policies shipped
with factcore: a graduated-interval policy (the default) and an FSRS policy
backed by py-fsrs.
"""

import logging
from abc import ABC, abstractmethod
import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, Field

from fsrs import Card as FSRSCard  # type: ignore
from fsrs import Rating as FSRSRating  # type: ignore
from fsrs import Scheduler as PyFSRSScheduler  # type: ignore
from fsrs import State as FSRSState  # type: ignore

from .constants import (
    DEFAULT_DESIRED_RETENTION,
    DEFAULT_INTERVALS,
    DEFAULT_LEARNING_STEPS,
    DEFAULT_MAXIMUM_INTERVAL_DAYS,
    DEFAULT_RELEARNING_STEPS,
    MINIMUM_CORRECT_INTERVAL,
)
from .exceptions import ConstructionError
from .models import FactStage, SchedulingState, ensure_utc

logger = logging.getLogger(__name__)


class BaseSchedulingPolicy(ABC):
    """
    Abstract base class for all scheduling policies in factcore.

    A policy is a pure strategy: it holds configuration only and computes
    eligibility and new scheduling states from its arguments.
    """

    def initial_state(self) -> SchedulingState:
        """State assigned to a freshly added fact: immediately eligible."""
        return SchedulingState()

    def is_eligible(
        self, state: SchedulingState, now: datetime.datetime
    ) -> bool:
        """Whether a fact with ``state`` is due for review at ``now``."""
        if state.next_eligible is None:
            return True
        return state.next_eligible <= ensure_utc(now)

    @abstractmethod
    def apply_outcome(
        self,
        state: SchedulingState,
        now: datetime.datetime,
        was_correct: bool,
    ) -> SchedulingState:
        """
        Computes the next scheduling state of a fact from a review outcome.

        Args:
            state: The fact's current scheduling state.
            now: The instant the outcome is recorded.
            was_correct: Whether the learner answered correctly.

        Returns:
            A new SchedulingState; the input is left untouched.
        """
        pass


class GraduatedPolicyConfig(BaseModel):
    """Configuration for the graduated-interval policy."""

    intervals: Tuple[datetime.timedelta, ...] = Field(
        default_factory=lambda: tuple(DEFAULT_INTERVALS)
    )


class GraduatedIntervalPolicy(BaseSchedulingPolicy):
    """
    Each consecutive correct answer waits longer before the fact is due again.
    An incorrect answer makes the fact due immediately, restarts the streak
    and adds one to the penalty counter.
    """

    def __init__(self, config: Optional[GraduatedPolicyConfig] = None):
        if config is None:
            config = GraduatedPolicyConfig()
        self._validate_intervals(config.intervals)
        self.config = config

    @staticmethod
    def _validate_intervals(intervals: Tuple[datetime.timedelta, ...]) -> None:
        if not intervals:
            raise ConstructionError(
                "Graduated policy needs at least one interval."
            )
        for interval in intervals:
            if interval <= datetime.timedelta(0):
                raise ConstructionError(
                    f"Invalid interval {interval}: intervals must be positive."
                )
        for shorter, longer in zip(intervals, intervals[1:]):
            if longer < shorter:
                raise ConstructionError(
                    f"Invalid intervals: {longer} follows {shorter}; "
                    "intervals must not decrease."
                )

    def interval_for_streak(self, streak: int) -> datetime.timedelta:
        """Waiting time after the ``streak``-th consecutive correct answer."""
        intervals = self.config.intervals
        return intervals[min(max(streak, 1), len(intervals)) - 1]

    def apply_outcome(
        self,
        state: SchedulingState,
        now: datetime.datetime,
        was_correct: bool,
    ) -> SchedulingState:
        now = ensure_utc(now)
        if was_correct:
            streak = state.streak + 1
            new_state = state.model_copy(
                update={
                    "stage": FactStage.Review,
                    "streak": streak,
                    "next_eligible": now + self.interval_for_streak(streak),
                    "review_count": state.review_count + 1,
                    "last_reviewed": now,
                }
            )
        else:
            new_state = state.model_copy(
                update={
                    "stage": FactStage.Relearning,
                    "streak": 0,
                    "penalty": state.penalty + 1,
                    "next_eligible": now,
                    "review_count": state.review_count + 1,
                    "last_reviewed": now,
                }
            )
        logger.debug(
            f"Graduated outcome correct={was_correct}: "
            f"streak={new_state.streak}, next_eligible={new_state.next_eligible}"
        )
        return new_state


class FSRSPolicyConfig(BaseModel):
    """Configuration for the FSRS policy."""

    parameters: Optional[Tuple[float, ...]] = None
    desired_retention: float = DEFAULT_DESIRED_RETENTION
    learning_steps: Tuple[datetime.timedelta, ...] = Field(
        default_factory=lambda: tuple(DEFAULT_LEARNING_STEPS)
    )
    relearning_steps: Tuple[datetime.timedelta, ...] = Field(
        default_factory=lambda: tuple(DEFAULT_RELEARNING_STEPS)
    )
    max_interval: int = DEFAULT_MAXIMUM_INTERVAL_DAYS
    enable_fuzzing: bool = True


class FSRSPolicy(BaseSchedulingPolicy):
    """
    FSRS (Free Spaced Repetition Scheduler) policy.

    A correct answer is rated Good and an incorrect one Again. The FSRS memory
    model (stability, difficulty, step) is cached on the scheduling state. An
    incorrect answer still leaves the fact due immediately.
    """

    def __init__(self, config: Optional[FSRSPolicyConfig] = None):
        if config is None:
            config = FSRSPolicyConfig()
        self.config = config

        if not 0 < config.desired_retention < 1:
            raise ConstructionError(
                f"Invalid desired retention: {config.desired_retention}. "
                "Must be between 0 and 1."
            )

        kwargs = {
            "desired_retention": config.desired_retention,
            "learning_steps": tuple(config.learning_steps),
            "relearning_steps": tuple(config.relearning_steps),
            "maximum_interval": config.max_interval,
            "enable_fuzzing": config.enable_fuzzing,
        }
        if config.parameters is not None:
            kwargs["parameters"] = tuple(config.parameters)
        try:
            self.fsrs_scheduler = PyFSRSScheduler(**kwargs)
        except (TypeError, ValueError) as e:
            raise ConstructionError(
                f"Failed to build FSRS scheduler: {e}", original_exception=e
            ) from e

    def _to_fsrs_card(
        self, state: SchedulingState, now: datetime.datetime
    ) -> FSRSCard:
        if state.stage == FactStage.New:
            return FSRSCard(due=now)
        return FSRSCard(
            state=FSRSState(int(state.stage)),
            step=state.step,
            stability=state.stability,
            difficulty=state.difficulty,
            due=state.next_eligible or now,
            last_review=state.last_reviewed,
        )

    def apply_outcome(
        self,
        state: SchedulingState,
        now: datetime.datetime,
        was_correct: bool,
    ) -> SchedulingState:
        now = ensure_utc(now)
        rating = FSRSRating.Good if was_correct else FSRSRating.Again
        updated_card, _ = self.fsrs_scheduler.review_card(
            self._to_fsrs_card(state, now), rating, review_datetime=now
        )

        try:
            stage = FactStage[updated_card.state.name.title()]
        except KeyError:
            logger.error(f"Unknown FSRS state: {updated_card.state.name}")
            raise ValueError(
                f"Cannot map FSRS state '{updated_card.state.name}' to FactStage"
            )

        if was_correct:
            next_eligible = max(
                ensure_utc(updated_card.due), now + MINIMUM_CORRECT_INTERVAL
            )
            streak, penalty = state.streak + 1, state.penalty
        else:
            next_eligible = now
            streak, penalty = 0, state.penalty + 1

        return state.model_copy(
            update={
                "stage": stage,
                "next_eligible": next_eligible,
                "streak": streak,
                "penalty": penalty,
                "review_count": state.review_count + 1,
                "last_reviewed": now,
                "stability": updated_card.stability,
                "difficulty": updated_card.difficulty,
                "step": updated_card.step,
            }
        )
