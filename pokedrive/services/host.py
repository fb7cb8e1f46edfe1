"""
Host environment that virtual filesystem domains are registered with.
"""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Tuple

from pokedrive.domain.errors import HostError
from pokedrive.domain.models import Domain

logger = logging.getLogger(__name__)


class DomainHost(ABC):
    """
    Registration calls a host offers to a virtual filesystem provider.
    Implementations raise HostError when they refuse a call.
    """

    @abstractmethod
    async def add_domain(self, domain: Domain) -> None:
        """Register a domain so the host starts presenting it."""
        pass

    @abstractmethod
    async def remove_domain(self, identifier: str) -> None:
        """Unregister a domain."""
        pass

    @abstractmethod
    async def signal_enumerator(self, domain_identifier: str, container_identifier: str) -> None:
        """Ask the host to enumerate a container of a registered domain again."""
        pass

    @abstractmethod
    def is_registered(self, identifier: str) -> bool:
        pass


class LocalDomainHost(DomainHost):
    """
    File-backed host. Registrations persist at <DATA_DIR>/domains.json so
    every process sharing the data directory agrees on them. Enumerator
    signals are queued until the host adapter drains them.

    Registry reads and writes from the async calls run in a worker thread.
    """

    def __init__(self, data_dir: Path):
        self._path = data_dir / "domains.json"
        self._lock = threading.Lock()
        self._signals: List[Tuple[str, str]] = []

    def _load(self) -> Dict[str, Domain]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return {d["identifier"]: Domain(**d) for d in raw.get("domains", [])}
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable domain registry {self._path}: {e}")
            return {}

    def _save(self, domains: Dict[str, Domain]) -> None:
        data = {"domains": [d.model_dump() for d in domains.values()]}
        try:
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            raise HostError(f"Failed to write domain registry: {e}") from e

    async def add_domain(self, domain: Domain) -> None:
        def _add():
            with self._lock:
                domains = self._load()
                if domain.identifier in domains:
                    raise HostError(f"Domain {domain.identifier!r} is already registered")
                domains[domain.identifier] = domain
                self._save(domains)

        await asyncio.to_thread(_add)
        logger.info(f"Registered domain {domain.identifier!r} ({domain.display_name})")

    async def remove_domain(self, identifier: str) -> None:
        def _remove():
            with self._lock:
                domains = self._load()
                if identifier not in domains:
                    raise HostError(f"Domain {identifier!r} is not registered")
                del domains[identifier]
                self._save(domains)
                self._signals = [s for s in self._signals if s[0] != identifier]

        await asyncio.to_thread(_remove)
        logger.info(f"Removed domain {identifier!r}")

    async def signal_enumerator(self, domain_identifier: str, container_identifier: str) -> None:
        def _signal():
            with self._lock:
                if domain_identifier not in self._load():
                    raise HostError(f"Domain {domain_identifier!r} is not registered")
                signal = (domain_identifier, container_identifier)
                if signal not in self._signals:
                    self._signals.append(signal)

        await asyncio.to_thread(_signal)
        logger.debug(f"Signalled enumerator for {container_identifier!r}")

    def is_registered(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._load()

    def drain_signals(self, domain_identifier: str) -> List[str]:
        """Pop the containers waiting to be re-enumerated, in signal order."""
        with self._lock:
            pending = [c for d, c in self._signals if d == domain_identifier]
            self._signals = [s for s in self._signals if s[0] != domain_identifier]
        return pending
