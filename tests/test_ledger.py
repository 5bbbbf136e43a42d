"""Tests for the service ledger and ride setup."""

import uuid

import numpy as np
import pytest

from oblivious_matching.ledger import (
    RecordExistsError,
    RecordNotFoundError,
    ServiceLedger,
    ServiceRecord,
    record_ride,
    set_ride,
)


def make_record(service_id: str = "svc-1", driver_id: str = "Driver3") -> ServiceRecord:
    return ServiceRecord(
        service_id=service_id,
        driver_id=driver_id,
        rider_id="Rider787",
        timestamp="2026-10-18T12:00:00+00:00",
        fare="12€",
    )


class TestServiceLedger:
    """Test key-value semantics with existence checks."""

    @pytest.fixture
    def ledger(self) -> ServiceLedger:
        return ServiceLedger()

    def test_create_and_read(self, ledger: ServiceLedger) -> None:
        ledger.create(make_record())
        assert ledger.read("svc-1").driver_id == "Driver3"
        assert "svc-1" in ledger
        assert len(ledger) == 1

    def test_create_duplicate_fails(self, ledger: ServiceLedger) -> None:
        ledger.create(make_record())
        with pytest.raises(RecordExistsError, match="already exists"):
            ledger.create(make_record(driver_id="Driver9"))
        assert ledger.read("svc-1").driver_id == "Driver3"

    def test_missing_record(self, ledger: ServiceLedger) -> None:
        with pytest.raises(RecordNotFoundError, match="does not exist"):
            ledger.read("nope")
        with pytest.raises(RecordNotFoundError):
            ledger.update("nope", "Driver1", "Rider1", "now")
        with pytest.raises(RecordNotFoundError):
            ledger.delete("nope")
        with pytest.raises(RecordNotFoundError):
            ledger.transfer("nope", "Driver1")

    def test_not_found_is_key_error(self, ledger: ServiceLedger) -> None:
        with pytest.raises(KeyError):
            ledger.read("nope")

    def test_update_keeps_fare_by_default(self, ledger: ServiceLedger) -> None:
        ledger.create(make_record())
        updated = ledger.update("svc-1", "Driver5", "Rider1", "later")
        assert updated.driver_id == "Driver5"
        assert updated.rider_id == "Rider1"
        assert updated.fare == "12€"

    def test_delete(self, ledger: ServiceLedger) -> None:
        ledger.create(make_record())
        ledger.delete("svc-1")
        assert not ledger.exists("svc-1")

    def test_transfer_returns_old_driver(self, ledger: ServiceLedger) -> None:
        ledger.create(make_record())
        assert ledger.transfer("svc-1", "Driver8") == "Driver3"
        assert ledger.read("svc-1").driver_id == "Driver8"

    def test_init_ledger_and_list(self, ledger: ServiceLedger) -> None:
        seeded = ledger.init_ledger("t0")
        assert len(seeded) == 9
        ids = [r.service_id for r in ledger.list_all()]
        assert ids == sorted(ids)
        assert ledger.read("asset0").driver_id == "Driver91"
        assert all(r.timestamp == "t0" for r in seeded)


class TestRideSetup:
    """Test ride negotiation and recording."""

    def test_set_ride(self) -> None:
        service_id, fare = set_ride("Rider787", "Driver3", np.random.default_rng(0))
        assert uuid.UUID(service_id).version == 4
        assert fare.endswith("€")
        assert 5 <= int(fare[:-1]) < 100

    def test_record_ride(self) -> None:
        ledger = ServiceLedger()
        record = record_ride(ledger, "Rider787", "Driver3", "t1", np.random.default_rng(1))
        assert ledger.read(record.service_id) == record
        assert record.rider_id == "Rider787"
        assert record.driver_id == "Driver3"
