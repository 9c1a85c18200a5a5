"""API endpoints for donor operations."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from bloodbank.database import get_session
from bloodbank.domain.exceptions import DonorNotFoundError, DuplicateDonorEmailError
from bloodbank.domain.services.donor_service import DonorService
from bloodbank.schemas.common import ApiResponse
from bloodbank.schemas.donor import DonorCreateRequest, DonorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/donors", tags=["donors"])


@router.post(
    "/",
    response_model=ApiResponse[DonorResponse],
    status_code=status.HTTP_201_CREATED,
)
def register_donor(
    donor_data: DonorCreateRequest,
    session: Annotated[Session, Depends(get_session)],
) -> ApiResponse[DonorResponse]:
    """Register a new donor."""
    service = DonorService(session)

    try:
        donor = service.register_donor(**donor_data.model_dump())
    except DuplicateDonorEmailError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("Donor registered", extra={"donor_id": donor.id})
    return ApiResponse[DonorResponse](
        message="Donor registered successfully!",
        data=DonorResponse.model_validate(donor),
    )


@router.get("/", response_model=ApiResponse[list[DonorResponse]])
def list_donors(
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    session: Annotated[Session, Depends(get_session)] = None,  # type: ignore[assignment]
) -> ApiResponse[list[DonorResponse]]:
    """List active donors."""
    service = DonorService(session)
    donors = service.list_donors(skip=skip, limit=limit)
    return ApiResponse[list[DonorResponse]](
        data=[DonorResponse.model_validate(d) for d in donors],
    )


@router.get("/{donor_id}", response_model=ApiResponse[DonorResponse])
def get_donor(
    donor_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> ApiResponse[DonorResponse]:
    """Retrieve an active donor by ID."""
    service = DonorService(session)

    try:
        donor = service.get_donor(donor_id)
    except DonorNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Donor not found.")

    return ApiResponse[DonorResponse](data=DonorResponse.model_validate(donor))


@router.delete("/{donor_id}", response_model=ApiResponse[DonorResponse])
def deactivate_donor(
    donor_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> ApiResponse[DonorResponse]:
    """Soft-delete a donor."""
    service = DonorService(session)

    try:
        donor = service.deactivate_donor(donor_id)
    except DonorNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Donor not found.")

    logger.info("Donor deactivated", extra={"donor_id": donor_id})
    return ApiResponse[DonorResponse](
        message="Donor marked as inactive successfully.",
        data=DonorResponse.model_validate(donor),
    )
