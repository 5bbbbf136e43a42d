"""Service ledger.

Records the ride service established between a rider and the driver the
matching round picked. Keyed by service id with existence checks: create
fails if the key exists, read/update/delete fail if it does not.

Current implementation: In-memory dict (ephemeral, single-node).
Future: back onto a permissioned ledger for multi-party deployments.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for ledger failures."""


class RecordExistsError(LedgerError):
    """A record with this service id already exists."""


class RecordNotFoundError(LedgerError, KeyError):
    """No record with this service id."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


@dataclass
class ServiceRecord:
    """One ride service.

    Attributes:
        service_id: Unique service identifier.
        driver_id: Driver chosen by the matching round.
        rider_id: Rider that requested the service.
        timestamp: When the driver was matched to the rider.
        fare: Nominal fare, e.g. "42€".
    """

    service_id: str
    driver_id: str
    rider_id: str
    timestamp: str
    fare: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


# Mock services seeded by init_ledger().
_SEED_RECORDS = [
    ("asset0", "Driver91", "Rider6"),
    ("asset1", "Driver2", "Rider19"),
    ("asset2", "Driver41", "Rider24"),
    ("asset3", "Driver32", "Rider24"),
    ("asset4", "Driver14", "Rider19"),
    ("asset5", "Driver53", "Rider19"),
    ("asset6", "Driver6", "Rider3"),
    ("asset7", "Driver27", "Rider87"),
    ("asset8", "Driver18", "Rider19"),
]


class ServiceLedger:
    """Thread-safe in-memory service ledger."""

    def __init__(self) -> None:
        self._records: dict[str, ServiceRecord] = {}
        self._lock = threading.RLock()

    def init_ledger(self, timestamp: str) -> list[ServiceRecord]:
        """Insert the mock services, overwriting any with the same id."""
        with self._lock:
            seeded = []
            for service_id, driver_id, rider_id in _SEED_RECORDS:
                record = ServiceRecord(
                    service_id=service_id,
                    driver_id=driver_id,
                    rider_id=rider_id,
                    timestamp=timestamp,
                )
                self._records[service_id] = record
                seeded.append(record)
            logger.info(f"Seeded ledger with {len(seeded)} services")
            return seeded

    def create(self, record: ServiceRecord) -> ServiceRecord:
        """Insert a new service.

        Raises:
            RecordExistsError: If the service id is taken.
        """
        with self._lock:
            if record.service_id in self._records:
                raise RecordExistsError(f"the service {record.service_id} already exists")
            self._records[record.service_id] = record
            logger.info(
                f"Created service {record.service_id}: "
                f"{record.rider_id} -> {record.driver_id}"
            )
            return record

    def read(self, service_id: str) -> ServiceRecord:
        """Return the service.

        Raises:
            RecordNotFoundError: If absent.
        """
        with self._lock:
            record = self._records.get(service_id)
            if record is None:
                raise RecordNotFoundError(f"the service {service_id} does not exist")
            return record

    def update(
        self,
        service_id: str,
        driver_id: str,
        rider_id: str,
        timestamp: str,
        fare: str | None = None,
    ) -> ServiceRecord:
        """Overwrite an existing service.

        Raises:
            RecordNotFoundError: If absent.
        """
        with self._lock:
            current = self.read(service_id)
            record = ServiceRecord(
                service_id=service_id,
                driver_id=driver_id,
                rider_id=rider_id,
                timestamp=timestamp,
                fare=current.fare if fare is None else fare,
            )
            self._records[service_id] = record
            return record

    def delete(self, service_id: str) -> None:
        """Remove a service.

        Raises:
            RecordNotFoundError: If absent.
        """
        with self._lock:
            if service_id not in self._records:
                raise RecordNotFoundError(f"the service {service_id} does not exist")
            del self._records[service_id]
            logger.info(f"Deleted service: {service_id}")

    def exists(self, service_id: str) -> bool:
        with self._lock:
            return service_id in self._records

    def transfer(self, service_id: str, new_driver_id: str) -> str:
        """Reassign a service to another driver, returning the previous one."""
        with self._lock:
            record = self.read(service_id)
            old_driver = record.driver_id
            record.driver_id = new_driver_id
            logger.info(f"Transferred service {service_id}: {old_driver} -> {new_driver_id}")
            return old_driver

    def list_all(self) -> list[ServiceRecord]:
        """All services ordered by id."""
        with self._lock:
            return [self._records[k] for k in sorted(self._records)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, service_id: str) -> bool:
        return self.exists(service_id)
