"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RideRequest(BaseModel):
    """Request to match a rider with the closest available driver.

    The rider position is encrypted under an ephemeral key; the service only
    combines ciphertexts and never sees coordinates.
    """

    rider_id: str = Field(..., min_length=1, description="Rider identifier")
    candidate_count: int | None = Field(
        default=None, ge=0, description="Drivers to match against (default from settings)"
    )
    seed: int | None = Field(default=None, description="Seed to reproduce the round")


class ServiceInfo(BaseModel):
    """A ride service stored in the ledger."""

    service_id: str
    driver_id: str
    rider_id: str
    timestamp: str
    fare: str = ""


class RideResponse(BaseModel):
    """Outcome of a matching round."""

    matched: bool
    driver_id: str | None = None
    min_distance: int | None = None
    error_count: int = 0
    candidate_count: int
    timings_ms: dict[str, float] = Field(default_factory=dict)
    service: ServiceInfo | None = None


class ServiceUpdateRequest(BaseModel):
    """Overwrite an existing service."""

    driver_id: str
    rider_id: str
    timestamp: str
    fare: str | None = None


class TransferRequest(BaseModel):
    """Reassign a service to another driver."""

    new_driver_id: str = Field(..., min_length=1)


class TransferResponse(BaseModel):
    service_id: str
    old_driver_id: str
    new_driver_id: str


class ServicesListResponse(BaseModel):
    services: list[ServiceInfo]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    backend: str


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: str | None = None
