"""Ride setup between a rider and the matched driver."""

from __future__ import annotations

import uuid

import numpy as np

from oblivious_matching.ledger.store import ServiceLedger, ServiceRecord

MIN_FARE = 5
MAX_FARE = 100


def set_ride(
    rider_id: str,  # noqa: ARG001
    driver_id: str,  # noqa: ARG001
    rng: np.random.Generator,
) -> tuple[str, str]:
    """Mock negotiation between rider and driver.

    Returns:
        (service_id, fare): a fresh UUID4 and a nominal fare in [5, 100) euros.
    """
    fare = int(rng.integers(MIN_FARE, MAX_FARE))
    return str(uuid.uuid4()), f"{fare}€"


def record_ride(
    ledger: ServiceLedger,
    rider_id: str,
    driver_id: str,
    timestamp: str,
    rng: np.random.Generator,
) -> ServiceRecord:
    """Set up the ride and create its ledger record."""
    service_id, fare = set_ride(rider_id, driver_id, rng)
    return ledger.create(
        ServiceRecord(
            service_id=service_id,
            driver_id=driver_id,
            rider_id=rider_id,
            timestamp=timestamp,
            fare=fare,
        )
    )
