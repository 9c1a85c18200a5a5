"""API endpoints for inventory operations."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from bloodbank.database import get_session
from bloodbank.domain.clock import Clock, get_clock
from bloodbank.domain.exceptions import BatchNotFoundError, DonorNotFoundError
from bloodbank.domain.models import BatchStatus, BloodType
from bloodbank.domain.services.inventory_service import InventoryService
from bloodbank.schemas.common import ApiResponse
from bloodbank.schemas.inventory import (
    BatchCreateRequest,
    BatchResponse,
    BloodTypeAvailability,
    StockLevelResponse,
    SweepResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.post(
    "/",
    response_model=ApiResponse[BatchResponse],
    status_code=status.HTTP_201_CREATED,
)
def receive_batch(
    batch_data: BatchCreateRequest,
    session: Annotated[Session, Depends(get_session)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ApiResponse[BatchResponse]:
    """Record a donation intake."""
    service = InventoryService(session, clock=clock)

    try:
        batch = service.receive_batch(**batch_data.model_dump())
    except DonorNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.info(
        "Blood unit added",
        extra={"batch_id": batch.id, "blood_type": str(batch.blood_type), "quantity": batch.quantity},
    )
    return ApiResponse[BatchResponse](
        message="Blood unit added successfully!",
        data=BatchResponse.model_validate(batch),
    )


@router.get("/", response_model=ApiResponse[list[BatchResponse]])
def list_batches(
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    blood_type: Optional[BloodType] = Query(None, description="Filter by blood type"),
    batch_status: Optional[BatchStatus] = Query(None, alias="status", description="Filter by status"),
    session: Annotated[Session, Depends(get_session)] = None,  # type: ignore[assignment]
    clock: Annotated[Clock, Depends(get_clock)] = None,  # type: ignore[assignment]
) -> ApiResponse[list[BatchResponse]]:
    """List batches after sweeping expired stock."""
    service = InventoryService(session, clock=clock)
    batches = service.list_batches(
        skip=skip, limit=limit, blood_type=blood_type, status=batch_status
    )
    return ApiResponse[list[BatchResponse]](
        data=[BatchResponse.model_validate(b) for b in batches],
    )


@router.get("/availability", response_model=ApiResponse[list[BloodTypeAvailability]])
def get_availability(
    blood_type: Optional[BloodType] = Query(None, description="Limit to one blood type"),
    session: Annotated[Session, Depends(get_session)] = None,  # type: ignore[assignment]
    clock: Annotated[Clock, Depends(get_clock)] = None,  # type: ignore[assignment]
) -> ApiResponse[list[BloodTypeAvailability]]:
    """Available, unexpired units per blood type."""
    service = InventoryService(session, clock=clock)

    if blood_type is not None:
        rows = [
            BloodTypeAvailability(
                blood_type=blood_type,
                available=service.compute_availability(blood_type),
            )
        ]
    else:
        rows = [
            BloodTypeAvailability(blood_type=bt, available=units)
            for bt, units in service.availability().items()
        ]

    return ApiResponse[list[BloodTypeAvailability]](data=rows)


@router.get("/summary", response_model=ApiResponse[list[StockLevelResponse]])
def get_stock_summary(
    session: Annotated[Session, Depends(get_session)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ApiResponse[list[StockLevelResponse]]:
    """Units grouped by blood type and status."""
    service = InventoryService(session, clock=clock)
    return ApiResponse[list[StockLevelResponse]](
        data=[StockLevelResponse.model_validate(level) for level in service.stock_summary()],
    )


@router.post("/sweep", response_model=ApiResponse[SweepResponse])
def sweep_expired(
    session: Annotated[Session, Depends(get_session)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ApiResponse[SweepResponse]:
    """Mark expired available batches as expired."""
    service = InventoryService(session, clock=clock)
    swept = service.sweep_expired()

    logger.info("Expiry sweep completed", extra={"swept": swept})
    return ApiResponse[SweepResponse](
        message=f"{swept} batch(es) marked as expired.",
        data=SweepResponse(swept=swept),
    )


@router.get("/{batch_id}", response_model=ApiResponse[BatchResponse])
def get_batch(
    batch_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> ApiResponse[BatchResponse]:
    """Retrieve a batch by ID."""
    service = InventoryService(session)

    try:
        batch = service.get_batch(batch_id)
    except BatchNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blood unit not found.")

    return ApiResponse[BatchResponse](data=BatchResponse.model_validate(batch))


@router.delete("/{batch_id}", response_model=ApiResponse[None])
def delete_batch(
    batch_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> ApiResponse[None]:
    """Remove a batch from inventory."""
    service = InventoryService(session)

    try:
        service.delete_batch(batch_id)
    except BatchNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blood unit not found.")

    logger.info("Blood unit deleted", extra={"batch_id": batch_id})
    return ApiResponse[None](message="Blood unit deleted successfully.")
