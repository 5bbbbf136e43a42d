"""FastAPI server for the Oblivious Ride Matching service.

- Runs a privacy-preserving matching round per ride request
- Records the matched ride in the service ledger
- Exposes ledger read/update/delete/transfer/list operations

The matching round never reveals the rider or driver coordinates to the
service; only the rider-side context can decrypt the distance vector.

API Version: v1

Run with:
    python -m oblivious_matching.server.main
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache

import numpy as np
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, status

from oblivious_matching import __version__
from oblivious_matching.config import settings
from oblivious_matching.core.backend import HomomorphicBackend
from oblivious_matching.core.backends import get_backend
from oblivious_matching.core.errors import CapabilityError, ConfigurationError
from oblivious_matching.ledger import (
    RecordExistsError,
    RecordNotFoundError,
    ServiceLedger,
    ServiceRecord,
    record_ride,
)
from oblivious_matching.protocol import run_matching_round
from oblivious_matching.server.schemas import (
    ErrorResponse,
    HealthResponse,
    RideRequest,
    RideResponse,
    ServiceInfo,
    ServicesListResponse,
    ServiceUpdateRequest,
    TransferRequest,
    TransferResponse,
)

# Logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Global instances
ledger = ServiceLedger()


@lru_cache(maxsize=1)
def get_matching_backend() -> HomomorphicBackend:
    """Backend selected by ORIDE_BACKEND, created on first use."""
    return get_backend(settings.BACKEND)


def get_ledger() -> ServiceLedger:
    return ledger


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    """Application lifespan handler."""
    logger.info(f"Starting {settings.APP_NAME} (backend: {settings.BACKEND})...")
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    description="Privacy-preserving nearest-driver matching over batched homomorphic encryption",
    version=__version__,
    lifespan=lifespan,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def _service_info(record: ServiceRecord) -> ServiceInfo:
    return ServiceInfo(**record.to_dict())


# =============================================================================
# Health Check
# =============================================================================


@app.get("/v1/health", response_model=HealthResponse, tags=["Health"])
async def health_check(
    backend: HomomorphicBackend = Depends(get_matching_backend),
) -> HealthResponse:
    """Health check endpoint.

    Returns service status, version, and active backend.
    """
    return HealthResponse(status="healthy", version=__version__, backend=backend.name)


# =============================================================================
# Ride Matching
# =============================================================================


@app.post("/v1/rides", response_model=RideResponse, tags=["Rides"])
def request_ride(
    request: RideRequest,
    backend: HomomorphicBackend = Depends(get_matching_backend),
    ledger: ServiceLedger = Depends(get_ledger),
) -> RideResponse:
    """Match a rider with the closest driver and record the service.

    A round where every candidate fails the consistency check is reported
    as ``matched=false``; nothing is written to the ledger in that case.

    Args:
        request: Rider id, optional candidate count and seed.

    Returns:
        Round outcome and, on a match, the created service.
    """
    count = request.candidate_count
    if count is None:
        count = settings.DEFAULT_CANDIDATE_COUNT

    try:
        report = run_matching_round(
            requester_id=request.rider_id,
            candidate_count=count,
            params=settings.batch_parameters(),
            backend=backend,
            seed=request.seed,
            verify=settings.VERIFY_CONSISTENCY,
            max_workers=settings.MAX_WORKERS,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except CapabilityError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Matching round failed: {e}",
        ) from e

    result = report.result
    response = RideResponse(
        matched=result.matched,
        driver_id=result.winning_id,
        min_distance=result.min_distance,
        error_count=result.error_count,
        candidate_count=report.candidate_count,
        timings_ms={k: round(v, 2) for k, v in report.timings_ms.items()},
    )
    if not result.matched:
        logger.info(f"No driver found for {request.rider_id}")
        return response

    record = record_ride(
        ledger,
        rider_id=request.rider_id,
        driver_id=result.winning_id,
        timestamp=report.finished_at.isoformat(),
        rng=np.random.default_rng(request.seed),
    )
    response.service = _service_info(record)
    return response


# =============================================================================
# Ledger
# =============================================================================


@app.post(
    "/v1/ledger/init",
    response_model=ServicesListResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Ledger"],
)
async def init_ledger(ledger: ServiceLedger = Depends(get_ledger)) -> ServicesListResponse:
    """Seed the ledger with mock services."""
    seeded = ledger.init_ledger(datetime.now(timezone.utc).isoformat())
    return ServicesListResponse(services=[_service_info(r) for r in seeded])


@app.get("/v1/services", response_model=ServicesListResponse, tags=["Ledger"])
async def list_services(ledger: ServiceLedger = Depends(get_ledger)) -> ServicesListResponse:
    """List every service in the ledger."""
    return ServicesListResponse(services=[_service_info(r) for r in ledger.list_all()])


@app.get("/v1/services/{service_id}", response_model=ServiceInfo, tags=["Ledger"])
async def read_service(
    service_id: str, ledger: ServiceLedger = Depends(get_ledger)
) -> ServiceInfo:
    try:
        return _service_info(ledger.read(service_id))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@app.post(
    "/v1/services",
    response_model=ServiceInfo,
    status_code=status.HTTP_201_CREATED,
    tags=["Ledger"],
)
async def create_service(
    service: ServiceInfo, ledger: ServiceLedger = Depends(get_ledger)
) -> ServiceInfo:
    """Create a service record directly."""
    try:
        return _service_info(ledger.create(ServiceRecord(**service.model_dump())))
    except RecordExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e


@app.put("/v1/services/{service_id}", response_model=ServiceInfo, tags=["Ledger"])
async def update_service(
    service_id: str,
    update: ServiceUpdateRequest,
    ledger: ServiceLedger = Depends(get_ledger),
) -> ServiceInfo:
    try:
        record = ledger.update(
            service_id,
            driver_id=update.driver_id,
            rider_id=update.rider_id,
            timestamp=update.timestamp,
            fare=update.fare,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return _service_info(record)


@app.delete("/v1/services/{service_id}", tags=["Ledger"])
async def delete_service(
    service_id: str, ledger: ServiceLedger = Depends(get_ledger)
) -> dict[str, str]:
    try:
        ledger.delete(service_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return {"status": "deleted", "service_id": service_id}


@app.post(
    "/v1/services/{service_id}/transfer",
    response_model=TransferResponse,
    tags=["Ledger"],
)
async def transfer_service(
    service_id: str,
    request: TransferRequest,
    ledger: ServiceLedger = Depends(get_ledger),
) -> TransferResponse:
    """Reassign a service to another driver."""
    try:
        old_driver = ledger.transfer(service_id, request.new_driver_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return TransferResponse(
        service_id=service_id, old_driver_id=old_driver, new_driver_id=request.new_driver_id
    )


def main() -> None:
    """Serve the API with uvicorn on ORIDE_HOST:ORIDE_PORT."""
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
