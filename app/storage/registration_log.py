# app/storage/registration_log.py
import json
import logging
import os
import tempfile
import threading
from functools import lru_cache
from typing import Dict, List, Optional

from app.config import get_settings
from app.errors import RegistrationLogError
from app.models.registration import Registration, SyncState

logger = logging.getLogger(__name__)


class RegistrationLog:
    """Local JSON copy of registrations.

    The whole file is one JSON array. Every read-modify-write happens under
    the instance lock and the new content replaces the file atomically, so
    one RegistrationLog per file must own all access to it.
    """

    def __init__(self, data_file: str):
        self.data_file = data_file
        self._lock = threading.RLock()
        self._ensure_data_file_exists()

    def _ensure_data_file_exists(self):
        if not os.path.exists(self.data_file):
            os.makedirs(os.path.dirname(self.data_file) or ".", exist_ok=True)
            self._save_entries([])

    def _load_entries(self) -> List[Dict]:
        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                entries = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as e:
            raise RegistrationLogError("Registration log could not be read", diagnostic=str(e))
        if not isinstance(entries, list):
            raise RegistrationLogError("Registration log is not a JSON array")
        return entries

    def _save_entries(self, entries: List[Dict]):
        directory = os.path.dirname(self.data_file) or "."
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".registrations-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2, ensure_ascii=False, default=str)
            os.replace(tmp_path, self.data_file)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise RegistrationLogError("Registration log could not be written", diagnostic=str(e))

    def get_all_entries(self) -> List[Dict]:
        with self._lock:
            return self._load_entries()

    def get_entry(self, registration_id) -> Optional[Dict]:
        key = str(registration_id)
        with self._lock:
            for entry in self._load_entries():
                if str(entry.get("id")) == key:
                    return entry
        return None

    def append(self, registration: Registration):
        with self._lock:
            entries = self._load_entries()
            entries.append(registration.to_json())
            self._save_entries(entries)

    def upsert(self, registration: Registration):
        """Replace the entry with the same id, or append a new one."""
        record = registration.to_json()
        with self._lock:
            entries = self._load_entries()
            for i, entry in enumerate(entries):
                if str(entry.get("id")) == registration.id:
                    entries[i] = record
                    break
            else:
                entries.append(record)
            self._save_entries(entries)

    def update_fields(self, registration_id, updated_data: Dict) -> Optional[Dict]:
        """Merge ``updated_data`` into the matching entry.

        Ids are compared as strings so entries written with numeric ids still
        match. Returns the updated entry, or None when no entry matches.
        """
        key = str(registration_id)
        with self._lock:
            entries = self._load_entries()
            for entry in entries:
                if str(entry.get("id")) == key:
                    entry.update(updated_data)
                    self._save_entries(entries)
                    return entry
        return None

    def pending_registrations(self) -> List[Registration]:
        pending = []
        with self._lock:
            entries = self._load_entries()
        for entry in entries:
            if entry.get("syncState") != SyncState.PENDING.value:
                continue
            if entry.get("id") is not None:
                entry = {**entry, "id": str(entry["id"])}
            try:
                pending.append(Registration.model_validate(entry))
            except ValueError:
                logger.error("Skipping malformed pending registration %r", entry.get("id"))
        return pending

    def mark_synced(self, registration_id) -> bool:
        return self.update_fields(registration_id, {"syncState": SyncState.SYNCED.value}) is not None


@lru_cache
def get_registration_log() -> RegistrationLog:
    return RegistrationLog(get_settings().registration_log_path)
