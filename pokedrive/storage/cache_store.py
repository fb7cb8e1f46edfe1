from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from pokedrive.domain.models import CatalogSnapshot

CATALOG_DATA_KEY = "cached_catalog_data"
LAST_UPDATE_KEY = "last_update"


class CacheStore(ABC):
    """
    Abstract base class for the shared catalog cache.

    Implementations must make a snapshot visible to every cooperating
    process, and readers must only ever observe a complete snapshot.
    """

    @abstractmethod
    def put(self, snapshot: CatalogSnapshot) -> None:
        """
        Persist the snapshot, replacing any previous one.
        Persistence failures are logged, never raised.
        """
        pass

    @abstractmethod
    def get(self) -> Optional[CatalogSnapshot]:
        """Return the last persisted snapshot, or None if absent or unreadable."""
        pass

    @abstractmethod
    def last_updated(self) -> Optional[datetime]:
        """Timestamp of the last successful put."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove any persisted snapshot."""
        pass
