"""
Persistent storage for the users' exam selections.

This module manages the file:

    data/processed/selections.json

with the schema

    {"selections": {"<token>": [3, 7, 12], ...}}

A token is an anonymous UUID handed to the user as a personal link; it
identifies a selection, it does not authenticate anybody.

Every operation reads the whole document, applies its change and writes
the whole document back before returning. Inside one process the writes
are serialized by a lock per file; two processes writing the same token
still race (last write wins).
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from myexams.errors import NotFoundError, StorageError, ValidationError
from myexams.logging import get_logger
from myexams.model import UserSelection

logger = get_logger(__name__)

TOKEN_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)

_locks: dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def default_store_path() -> Path:
    """
    Return the default path of selections.json inside the package.

    Using a function instead of a constant makes testing easier,
    because tests can pass their own path.
    """
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data" / "processed" / "selections.json"


def parse_token(text: str) -> uuid.UUID:
    """
    Validate a token string (canonical UUID, version 1-5) and return it.
    """
    candidate = (text or "").strip()
    if not TOKEN_PATTERN.match(candidate):
        raise ValidationError(f"Invalid token: {text!r}")
    return uuid.UUID(candidate)


def new_token() -> uuid.UUID:
    return uuid.uuid4()


def _coerce_token(token: uuid.UUID | str) -> uuid.UUID:
    return token if isinstance(token, uuid.UUID) else parse_token(token)


def _lock_for(path: Path) -> threading.Lock:
    with _locks_guard:
        return _locks.setdefault(path, threading.Lock())


class SelectionStore:
    """
    Durable mapping token -> set of selected exam ids.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = (Path(path) if path is not None else default_store_path()).resolve()

    # -----------------------------------------------------------------------
    # Whole-document I/O
    # -----------------------------------------------------------------------

    def _read(self) -> dict[str, set[int]]:
        # First run: file does not exist yet -> nobody selected anything
        if not self.path.exists():
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read selection store {self.path}: {e}") from e

        raw = data.get("selections") if isinstance(data, dict) else None
        if not isinstance(raw, dict):
            raise StorageError(f"Selection store {self.path} has no 'selections' mapping")

        out: dict[str, set[int]] = {}
        for key, ids in raw.items():
            if not isinstance(ids, list) or not all(isinstance(x, int) for x in ids):
                raise StorageError(f"Selection store {self.path} has invalid ids for {key}")
            out[str(key)] = set(ids)
        return out

    def _write(self, selections: dict[str, set[int]]) -> None:
        payload = {"selections": {k: sorted(v) for k, v in sorted(selections.items())}}
        text = json.dumps(payload, indent=2, ensure_ascii=False)

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".selections-", suffix=".tmp", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Cannot write selection store {self.path}: {e}") from e

    @contextmanager
    def session(self, always_persist: bool = True) -> Iterator[dict[str, set[int]]]:
        """
        Scoped handle on the whole store: lock, read, yield, persist, unlock.

        The yielded mapping is persisted only if the block finishes without
        an exception (and, with always_persist=False, only if it changed).
        The lock is released on every exit path.
        """
        with _lock_for(self.path):
            selections = self._read()
            before = {k: set(v) for k, v in selections.items()}
            yield selections
            if always_persist or selections != before:
                self._write(selections)

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    def load_or_create(self, token: uuid.UUID | str) -> UserSelection:
        """
        Return the selection for token, creating an empty one if unseen.
        """
        tok = _coerce_token(token)
        with self.session(always_persist=False) as selections:
            ids = selections.setdefault(str(tok), set())
            return UserSelection(token=tok, selected_ids=set(ids))

    def get(self, token: uuid.UUID | str) -> UserSelection:
        """
        Return the selection for a known token. Never creates an entry.
        """
        tok = _coerce_token(token)
        with _lock_for(self.path):
            selections = self._read()
        if str(tok) not in selections:
            raise NotFoundError(f"Unknown token: {tok}")
        return UserSelection(token=tok, selected_ids=selections[str(tok)])

    def exists(self, token: uuid.UUID | str) -> bool:
        try:
            self.get(token)
        except NotFoundError:
            return False
        return True

    def selected_ids(self, token: uuid.UUID | str) -> frozenset[int]:
        return frozenset(self.get(token).selected_ids)

    def count(self, token: uuid.UUID | str) -> int:
        return self.load_or_create(token).count

    def add(self, token: uuid.UUID | str, exam_id: int) -> UserSelection:
        tok = _coerce_token(token)
        with self.session() as selections:
            ids = selections.setdefault(str(tok), set())
            ids.add(int(exam_id))
            result = UserSelection(token=tok, selected_ids=set(ids))
        logger.debug("selection_saved", token=str(tok), action="add", exam_id=exam_id, count=result.count)
        return result

    def remove(self, token: uuid.UUID | str, exam_id: int) -> UserSelection:
        tok = _coerce_token(token)
        with self.session() as selections:
            ids = selections.setdefault(str(tok), set())
            ids.discard(int(exam_id))
            result = UserSelection(token=tok, selected_ids=set(ids))
        logger.debug("selection_saved", token=str(tok), action="remove", exam_id=exam_id, count=result.count)
        return result

    def clear(self, token: uuid.UUID | str) -> UserSelection:
        tok = _coerce_token(token)
        with self.session() as selections:
            selections[str(tok)] = set()
        logger.debug("selection_saved", token=str(tok), action="clear", count=0)
        return UserSelection(token=tok)
