from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from pydantic import ValidationError

from .models import BoundUser

logger = logging.getLogger(__name__)


class BindingStoreError(RuntimeError):
    """Durable store content could not be read back."""


class BindingStore:
    """
    Bound users, in insertion order, mirrored to a JSON array on disk.

    Notes:
    - Ids are unique: upsert() replaces an existing record in place.
    - Every mutation rewrites the whole file before returning.
    - Mutations are serialized so the callback server and the bot cannot
      interleave a list update with a file write.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._users: List[BoundUser] = []
        self._index: Dict[str, int] = {}
        self._lock = threading.RLock()

    # -------------------------
    # Reads
    # -------------------------

    def __len__(self) -> int:
        return len(self._users)

    def __iter__(self) -> Iterator[BoundUser]:
        return iter(self.users())

    def users(self) -> Tuple[BoundUser, ...]:
        """Snapshot of all records in insertion order."""
        with self._lock:
            return tuple(self._users)

    def find(self, user_id: str) -> Optional[BoundUser]:
        with self._lock:
            pos = self._index.get(str(user_id).strip())
            return self._users[pos] if pos is not None else None

    # -------------------------
    # Load / persist
    # -------------------------

    def load(self) -> int:
        """
        Read the durable store.

        Missing file => empty store. Malformed content => BindingStoreError
        (startup must not silently drop bindings).
        Returns the number of records loaded.
        """
        with self._lock:
            self._users = []
            self._index = {}

            if not self.path.exists():
                logger.info("binding store %s not found; starting empty", self.path)
                return 0

            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise BindingStoreError(f"Cannot read binding store {self.path}: {e}") from e

            if not isinstance(raw, list):
                raise BindingStoreError(
                    f"Binding store {self.path} must contain a JSON array, got {type(raw).__name__}."
                )

            duplicates = 0
            for pos, entry in enumerate(raw):
                if not isinstance(entry, dict):
                    raise BindingStoreError(f"Binding store {self.path}: entry {pos} is not an object.")
                try:
                    user = BoundUser.model_validate(entry)
                except ValidationError as e:
                    raise BindingStoreError(f"Binding store {self.path}: entry {pos} is invalid: {e}") from e
                if not self._put(user):
                    duplicates += 1

            if duplicates:
                # Files written before ids were deduplicated can hold repeats.
                logger.warning(
                    "binding store %s held %s duplicate record(s); collapsed to latest values",
                    self.path,
                    duplicates,
                )
                self._persist()

            logger.info("binding store loaded: %s user(s) from %s", len(self._users), self.path)
            return len(self._users)

    def _persist(self, users: Optional[List[BoundUser]] = None) -> None:
        records = self._users if users is None else users
        payload = json.dumps([u.to_record() for u in records], indent=2, ensure_ascii=False)

        folder = self.path.parent
        folder.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(folder))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    # -------------------------
    # Mutations
    # -------------------------

    def _put(self, user: BoundUser) -> bool:
        pos = self._index.get(user.id)
        if pos is not None:
            self._users[pos] = user
            return False
        self._index[user.id] = len(self._users)
        self._users.append(user)
        return True

    def _commit(self, users: List[BoundUser]) -> None:
        self._users = users
        self._index = {u.id: i for i, u in enumerate(users)}

    def upsert(self, user: BoundUser) -> bool:
        """
        Insert or replace by id. Returns True when a new record was added.

        The file is written first; a failed write leaves memory unchanged.
        """
        with self._lock:
            users = list(self._users)
            pos = self._index.get(user.id)
            if pos is None:
                users.append(user)
            else:
                users[pos] = user

            self._persist(users)
            self._commit(users)
            return pos is None

    def remove(self, user_id: str) -> bool:
        """
        Remove the record with this id. Returns whether a removal occurred.
        The file is rewritten only when something was removed.
        """
        with self._lock:
            key = str(user_id).strip()
            pos = self._index.get(key)
            if pos is None:
                return False

            users = self._users[:pos] + self._users[pos + 1 :]
            self._persist(users)
            self._commit(users)
            return True


__all__ = ["BindingStore", "BindingStoreError"]
