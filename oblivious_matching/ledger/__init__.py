"""Service ledger collaborator."""

from oblivious_matching.ledger.rides import record_ride, set_ride
from oblivious_matching.ledger.store import (
    LedgerError,
    RecordExistsError,
    RecordNotFoundError,
    ServiceLedger,
    ServiceRecord,
)

__all__ = [
    "record_ride",
    "set_ride",
    "LedgerError",
    "RecordExistsError",
    "RecordNotFoundError",
    "ServiceLedger",
    "ServiceRecord",
]
