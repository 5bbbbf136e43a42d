"""Integration tests for the ride service API.

Tests the full flow: ride request -> matching round -> ledger record.
The reference backend stands in for BFV so the API suite stays fast.
"""

import pytest
from fastapi.testclient import TestClient

from oblivious_matching.core.backends.plaintext import PlaintextBackend
from oblivious_matching.core.errors import CapabilityError
from oblivious_matching.ledger import ServiceLedger
from oblivious_matching.server.main import app, get_ledger, get_matching_backend


class TestRideService:
    """Test ride matching and ledger endpoints."""

    @pytest.fixture
    def ledger(self) -> ServiceLedger:
        return ServiceLedger()

    @pytest.fixture
    def test_client(self, ledger: ServiceLedger):
        """Create FastAPI test client with the reference backend."""
        backend = PlaintextBackend()
        app.dependency_overrides[get_matching_backend] = lambda: backend
        app.dependency_overrides[get_ledger] = lambda: ledger
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_health_check(self, test_client: TestClient) -> None:
        response = test_client.get("/v1/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert data["backend"] == "Plaintext-Reference"

    def test_ride_creates_service(self, test_client: TestClient, ledger: ServiceLedger) -> None:
        """A matched ride is written to the ledger."""
        response = test_client.post(
            "/v1/rides", json={"rider_id": "Rider787", "candidate_count": 8, "seed": 4}
        )
        assert response.status_code == 200

        data = response.json()
        assert data["matched"] is True
        assert data["driver_id"].startswith("Driver")
        assert data["error_count"] == 0
        assert data["candidate_count"] == 8
        assert "evaluation" in data["timings_ms"]

        service = data["service"]
        assert service["driver_id"] == data["driver_id"]
        assert service["rider_id"] == "Rider787"
        assert ledger.exists(service["service_id"])

    def test_ride_with_no_candidates(self, test_client: TestClient, ledger: ServiceLedger) -> None:
        response = test_client.post("/v1/rides", json={"rider_id": "Rider1", "candidate_count": 0})
        assert response.status_code == 200
        data = response.json()
        assert data["matched"] is False
        assert data["service"] is None
        assert len(ledger) == 0

    def test_ride_pool_too_large(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/v1/rides", json={"rider_id": "Rider1", "candidate_count": 5000}
        )
        assert response.status_code == 400
        assert "slot pairs" in response.json()["detail"]

    def test_ride_backend_failure(self, test_client: TestClient) -> None:
        class Broken(PlaintextBackend):
            def add(self, left, right):
                raise CapabilityError("addition failed")

        app.dependency_overrides[get_matching_backend] = lambda: Broken()
        response = test_client.post("/v1/rides", json={"rider_id": "Rider1", "candidate_count": 2})
        assert response.status_code == 500
        assert "addition failed" in response.json()["detail"]

    def test_invalid_request(self, test_client: TestClient) -> None:
        response = test_client.post("/v1/rides", json={"rider_id": "", "candidate_count": -1})
        assert response.status_code == 422

    def test_ledger_crud(self, test_client: TestClient) -> None:
        """Create, read, update, transfer, list and delete a service."""
        service = {
            "service_id": "svc-1",
            "driver_id": "Driver3",
            "rider_id": "Rider787",
            "timestamp": "t0",
            "fare": "10€",
        }
        assert test_client.post("/v1/services", json=service).status_code == 201
        assert test_client.post("/v1/services", json=service).status_code == 409

        response = test_client.get("/v1/services/svc-1")
        assert response.status_code == 200
        assert response.json()["fare"] == "10€"

        response = test_client.put(
            "/v1/services/svc-1",
            json={"driver_id": "Driver4", "rider_id": "Rider787", "timestamp": "t1"},
        )
        assert response.status_code == 200
        assert response.json()["driver_id"] == "Driver4"

        response = test_client.post(
            "/v1/services/svc-1/transfer", json={"new_driver_id": "Driver9"}
        )
        assert response.json() == {
            "service_id": "svc-1",
            "old_driver_id": "Driver4",
            "new_driver_id": "Driver9",
        }

        services = test_client.get("/v1/services").json()["services"]
        assert [s["service_id"] for s in services] == ["svc-1"]

        assert test_client.delete("/v1/services/svc-1").status_code == 200
        assert test_client.get("/v1/services/svc-1").status_code == 404
        assert test_client.delete("/v1/services/svc-1").status_code == 404

    def test_init_ledger(self, test_client: TestClient) -> None:
        response = test_client.post("/v1/ledger/init")
        assert response.status_code == 201
        assert len(response.json()["services"]) == 9

        services = test_client.get("/v1/services").json()["services"]
        assert len(services) == 9

    def test_unknown_service_transfer(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/v1/services/missing/transfer", json={"new_driver_id": "Driver1"}
        )
        assert response.status_code == 404


class TestServerEntryPoint:
    def test_main_runs_uvicorn(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """main() serves the app on the configured host and port."""
        from oblivious_matching.server import main as server_main

        calls = []
        monkeypatch.setattr(
            server_main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs))
        )
        server_main.main()

        assert len(calls) == 1
        target, kwargs = calls[0]
        assert target is app
        assert kwargs["host"] == server_main.settings.HOST
        assert kwargs["port"] == server_main.settings.PORT
