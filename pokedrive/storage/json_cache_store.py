import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from pokedrive.domain.models import CatalogEntry, CatalogSnapshot
from pokedrive.storage.cache_store import CATALOG_DATA_KEY, LAST_UPDATE_KEY, CacheStore

logger = logging.getLogger(__name__)

_ENTRIES_ADAPTER = TypeAdapter(List[CatalogEntry])


class JsonCacheStore(CacheStore):
    """
    Catalog cache kept in one JSON document per shared namespace:
    <DATA_DIR>/shared/<namespace>.json

    The document holds the two keys `cached_catalog_data` (the serialized
    entry list) and `last_update`. It is rewritten through a temp file and
    os.replace, so other processes see either the old or the new document.
    """

    def __init__(self, data_dir: Path, namespace: str):
        self._shared_dir = data_dir / "shared"
        self._path = self._shared_dir / f"{namespace}.json"
        self._write_lock = threading.Lock()

        if not self._shared_dir.exists():
            self._shared_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def put(self, snapshot: CatalogSnapshot) -> None:
        entries = _ENTRIES_ADAPTER.dump_python(snapshot.entries, mode="json", by_alias=True)
        document = {
            CATALOG_DATA_KEY: json.dumps(entries),
            LAST_UPDATE_KEY: snapshot.fetched_at.isoformat(),
        }

        with self._write_lock:
            try:
                self._shared_dir.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self._path.name}.", suffix=".tmp", dir=self._shared_dir
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(document, f, indent=2)
                    os.replace(tmp_name, self._path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                logger.error(f"Failed to cache catalog to {self._path}: {e}")
                return

        logger.info(f"Cached {len(snapshot.entries)} catalog entries")

    def get(self) -> Optional[CatalogSnapshot]:
        document = self._read_document()
        if document is None:
            return None

        raw_entries = document.get(CATALOG_DATA_KEY)
        fetched_at = self._parse_timestamp(document.get(LAST_UPDATE_KEY))
        if raw_entries is None or fetched_at is None:
            return None

        try:
            entries = _ENTRIES_ADAPTER.validate_json(raw_entries)
        except (ValidationError, TypeError, ValueError) as e:
            logger.error(f"Failed to decode cached catalog: {e}")
            return None

        return CatalogSnapshot(entries=entries, fetched_at=fetched_at)

    def last_updated(self) -> Optional[datetime]:
        document = self._read_document()
        if document is None:
            return None
        return self._parse_timestamp(document.get(LAST_UPDATE_KEY))

    def clear(self) -> None:
        with self._write_lock:
            self._path.unlink(missing_ok=True)

    def _read_document(self) -> Optional[Dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache file {self._path}: {e}")
            return None
        if not isinstance(raw, dict):
            return None
        return raw

    @staticmethod
    def _parse_timestamp(value: Any) -> Optional[datetime]:
        if not isinstance(value, str):
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
