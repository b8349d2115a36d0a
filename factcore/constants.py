"""
Scheduling constants.

Static defaults for the built-in scheduling policies. No runtime configuration
or path defaults - pure constants only.
"""
from datetime import timedelta
from typing import Tuple

# Waiting time after the n-th consecutive correct answer; the last entry
# repeats once the streak runs past the end.
DEFAULT_INTERVALS: Tuple[timedelta, ...] = (
    timedelta(minutes=10),
    timedelta(hours=1),
    timedelta(hours=6),
    timedelta(days=1),
    timedelta(days=3),
    timedelta(days=7),
    timedelta(days=16),
    timedelta(days=35),
    timedelta(days=90),
)

# FSRS defaults, mirroring py-fsrs.
DEFAULT_DESIRED_RETENTION: float = 0.9
DEFAULT_LEARNING_STEPS: Tuple[timedelta, ...] = (
    timedelta(minutes=1),
    timedelta(minutes=10),
)
DEFAULT_RELEARNING_STEPS: Tuple[timedelta, ...] = (timedelta(minutes=10),)
DEFAULT_MAXIMUM_INTERVAL_DAYS: int = 36500

# A correct answer never schedules a fact sooner than this.
MINIMUM_CORRECT_INTERVAL: timedelta = timedelta(minutes=1)
