"""
Import and export of facts as YAML documents.

The document layout is::

    facts:
      - term: hola
        definition: hello

Only terms and definitions travel; scheduling state stays in storage.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Sequence, Set, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .either import Either, Left, Right, is_left, to_normal
from .exceptions import TransferError
from .models import Fact

logger = logging.getLogger(__name__)


class FactEntry(BaseModel):
    """One term/definition pair as it appears in a transfer file."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    term: str = Field(..., min_length=1)
    definition: str = Field(...)

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.term, self.definition)

    def sort_key(self) -> Tuple[str, str]:
        return (self.term, self.definition)


def normalize_term(text: str) -> str:
    """Lowercase and strip surrounding whitespace for duplicate detection."""
    return text.lower().strip()


def parse_entry(raw: object, idx: int, path: Path) -> Either[FactEntry, TransferError]:
    """
    Validate one raw entry: ``Left(FactEntry)`` on success,
    ``Right(TransferError)`` describing the problem otherwise.
    """
    if not isinstance(raw, dict):
        return Right(
            TransferError(
                f"Entry at index {idx} is not a mapping.",
                path=path,
                entry_index=idx,
            )
        )
    try:
        return Left(FactEntry.model_validate(raw))
    except ValidationError as e:
        error_details = e.errors()[0]
        field = ".".join(map(str, error_details["loc"]))
        return Right(
            TransferError(
                f"Validation error in field '{field}': {error_details['msg']}",
                path=path,
                entry_index=idx,
                original_exception=e,
            )
        )


def _load_raw_entries(path: Path) -> list:
    try:
        content = path.read_text(encoding="utf-8")
        raw = yaml.safe_load(content)
    except FileNotFoundError:
        raise TransferError("File not found.", path=path) from None
    except UnicodeDecodeError as e:
        raise TransferError(
            "File is not valid UTF-8.", path=path, original_exception=e
        ) from e
    except OSError as e:
        raise TransferError(
            f"Could not read file: {e}", path=path, original_exception=e
        ) from e
    except yaml.YAMLError as e:
        raise TransferError(
            f"Invalid YAML syntax: {e}", path=path, original_exception=e
        ) from e

    if raw is None:
        return []
    if not isinstance(raw, dict) or not isinstance(raw.get("facts", []), list):
        raise TransferError(
            "Top level must be a mapping with a 'facts' list.", path=path
        )
    return raw.get("facts") or []


def read_entries(path: Path) -> Tuple[List[FactEntry], List[TransferError]]:
    """
    Read a transfer file.

    Returns:
        (entries, errors): the valid entries in file order, and one
        TransferError per invalid entry.

    Raises:
        TransferError: If the file is missing, unreadable, not YAML, or not
            shaped like a transfer document.
    """
    entries: List[FactEntry] = []
    errors: List[TransferError] = []
    for idx, raw in enumerate(_load_raw_entries(path)):
        result = parse_entry(raw, idx, path)
        value = to_normal(result)
        if is_left(result):
            entries.append(value)
        else:
            errors.append(value)

    logger.info(
        f"Read {len(entries)} entr{'y' if len(entries) == 1 else 'ies'} "
        f"from {path} ({len(errors)} invalid)."
    )
    return entries, errors


def filter_new_entries(
    existing_facts: Sequence[Fact], entries: Iterable[FactEntry]
) -> Tuple[List[FactEntry], int]:
    """
    Drop entries whose term duplicates a stored fact or an earlier entry.

    Returns:
        (new_entries, duplicate_count)
    """
    existing_terms: Set[str] = {normalize_term(f.term) for f in existing_facts}
    new_entries: List[FactEntry] = []
    processed_terms: Set[str] = set()
    duplicate_count = 0

    for entry in entries:
        normalized = normalize_term(entry.term)
        if normalized in existing_terms or normalized in processed_terms:
            duplicate_count += 1
        else:
            new_entries.append(entry)
            processed_terms.add(normalized)

    return new_entries, duplicate_count


def export_facts(
    facts: Sequence[Fact], path: Path, overwrite_existing: bool = False
) -> int:
    """
    Write facts to ``path`` sorted by (term, definition).

    Unless ``overwrite_existing`` is set, entries already in the file are kept
    and written back alongside the new ones.

    Returns:
        Number of entries written.

    Raises:
        TransferError: If an existing file cannot be read or the output
            cannot be written.
    """
    entries = [FactEntry(term=f.term, definition=f.definition) for f in facts]
    if not overwrite_existing and path.exists():
        existing, errors = read_entries(path)
        for error in errors:
            logger.warning(f"Skipping invalid entry while merging: {error}")
        entries.extend(existing)

    entries.sort(key=lambda e: e.sort_key())
    document = {"facts": [entry.model_dump() for entry in entries]}

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(document, f, allow_unicode=True, sort_keys=False)
    except OSError as e:
        logger.error(f"Could not write to file {path}: {e}")
        raise TransferError(
            f"Could not write file: {e}", path=path, original_exception=e
        ) from e

    logger.info(f"Exported {len(entries)} entries to {path}.")
    return len(entries)
