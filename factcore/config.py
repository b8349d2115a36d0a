"""
Centralized configuration for factcore, plus the factories that turn settings
into engine components.
"""
import logging
from datetime import timedelta
from pathlib import Path
from typing import Literal, Optional, Tuple

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from .constants import DEFAULT_DESIRED_RETENTION
from .exceptions import ConstructionError
from .scheduler import (
    BaseSchedulingPolicy,
    FSRSPolicy,
    FSRSPolicyConfig,
    GraduatedIntervalPolicy,
    GraduatedPolicyConfig,
)
from .selection import (
    BaseSelectionStrategy,
    InsertionOrderSelection,
    SeededRandomSelection,
)
from .session import SessionController
from .storage import DuckDBStorage, JsonFileStorage, MemoryStorage, Storage

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".factcore"


class Settings(BaseSettings):
    """
    Application settings, loaded from FACTCORE_* environment variables or a
    .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FACTCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Storage ---
    storage_backend: Literal["json", "duckdb", "memory"] = "json"
    # Defaults to facts.json / facts.duckdb in DEFAULT_DATA_DIR when unset.
    data_path: Optional[Path] = None

    # --- Scheduling ---
    policy: Literal["graduated", "fsrs"] = "graduated"
    intervals: Optional[Tuple[timedelta, ...]] = None
    desired_retention: float = DEFAULT_DESIRED_RETENTION

    # --- Selection ---
    selection: Literal["ordered", "random"] = "ordered"
    selection_seed: Optional[int] = None

    def resolved_data_path(self) -> Path:
        if self.data_path is not None:
            return self.data_path
        suffix = "duckdb" if self.storage_backend == "duckdb" else "json"
        return DEFAULT_DATA_DIR / f"facts.{suffix}"


def load_settings(**overrides) -> Settings:
    """
    Read settings from the environment, with keyword overrides taking
    precedence.

    Raises:
        ConstructionError: If any value fails validation.
    """
    try:
        return Settings(**overrides)
    except (ValidationError, SettingsError) as e:
        raise ConstructionError(
            f"Invalid configuration: {e}", original_exception=e
        ) from e


def build_storage(settings: Settings) -> Storage:
    backend = settings.storage_backend
    if backend == "json":
        return JsonFileStorage(settings.resolved_data_path())
    if backend == "duckdb":
        return DuckDBStorage(settings.resolved_data_path())
    if backend == "memory":
        return MemoryStorage()
    raise ConstructionError(f"Unknown storage backend: '{backend}'")


def build_policy(settings: Settings) -> BaseSchedulingPolicy:
    if settings.policy == "graduated":
        if settings.intervals is None:
            return GraduatedIntervalPolicy()
        return GraduatedIntervalPolicy(
            GraduatedPolicyConfig(intervals=settings.intervals)
        )
    if settings.policy == "fsrs":
        return FSRSPolicy(
            FSRSPolicyConfig(desired_retention=settings.desired_retention)
        )
    raise ConstructionError(f"Unknown scheduling policy: '{settings.policy}'")


def build_selection(settings: Settings) -> BaseSelectionStrategy:
    if settings.selection == "ordered":
        return InsertionOrderSelection()
    if settings.selection == "random":
        return SeededRandomSelection(seed=settings.selection_seed)
    raise ConstructionError(
        f"Unknown selection strategy: '{settings.selection}'"
    )


def build_controller(settings: Optional[Settings] = None) -> SessionController:
    """
    Assemble a SessionController from settings. The controller is returned
    unloaded; the caller decides when to call ``load()``.

    Raises:
        ConstructionError: If any component cannot be built.
    """
    if settings is None:
        settings = load_settings()
    logger.debug(
        f"Building controller: backend={settings.storage_backend}, "
        f"policy={settings.policy}, selection={settings.selection}"
    )
    return SessionController(
        storage=build_storage(settings),
        policy=build_policy(settings),
        selection=build_selection(settings),
    )
