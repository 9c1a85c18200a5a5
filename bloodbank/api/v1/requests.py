"""API endpoints for blood request operations."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from bloodbank.database import get_session
from bloodbank.domain.clock import Clock, get_clock
from bloodbank.domain.exceptions import (
    InsufficientStockError,
    InvalidRequestStateError,
    PersistenceConflictError,
    RequestNotFoundError,
)
from bloodbank.domain.models import BatchStatus, RequestStatus
from bloodbank.domain.services.fulfillment_service import RequestFulfillmentService
from bloodbank.domain.services.request_service import RequestService
from bloodbank.schemas.common import ApiResponse
from bloodbank.schemas.request import (
    AllocationLineResponse,
    ApproveRequest,
    FulfillmentResponse,
    RequestCreateRequest,
    RequestResponse,
    RequestStatusUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["requests"])

UNEXPECTED_ERROR = "An unexpected server error occurred."


@router.post(
    "/",
    response_model=ApiResponse[RequestResponse],
    status_code=status.HTTP_201_CREATED,
)
def submit_request(
    request_data: RequestCreateRequest,
    session: Annotated[Session, Depends(get_session)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ApiResponse[RequestResponse]:
    """Submit a blood request."""
    service = RequestService(session, clock=clock)
    request = service.submit_request(**request_data.model_dump())

    logger.info(
        "Blood request submitted",
        extra={
            "request_id": request.id,
            "blood_type": str(request.blood_type),
            "quantity": request.quantity,
        },
    )
    return ApiResponse[RequestResponse](
        message="Blood request submitted successfully!",
        data=RequestResponse.model_validate(request),
    )


@router.get("/", response_model=ApiResponse[list[RequestResponse]])
def list_requests(
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(100, ge=1, le=1000, description="Page size"),
    request_status: Optional[RequestStatus] = Query(
        None, alias="status", description="Filter by status"
    ),
    session: Annotated[Session, Depends(get_session)] = None,  # type: ignore[assignment]
) -> ApiResponse[list[RequestResponse]]:
    """List requests, most recent first."""
    service = RequestService(session)
    requests = service.list_requests(skip=skip, limit=limit, status=request_status)
    return ApiResponse[list[RequestResponse]](
        data=[RequestResponse.model_validate(r) for r in requests],
    )


@router.get("/{request_id}", response_model=ApiResponse[RequestResponse])
def get_request(
    request_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> ApiResponse[RequestResponse]:
    """Retrieve a request by ID."""
    service = RequestService(session)

    try:
        request = service.get_request(request_id)
    except RequestNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found.")

    return ApiResponse[RequestResponse](data=RequestResponse.model_validate(request))


@router.put("/{request_id}/approve", response_model=ApiResponse[FulfillmentResponse])
def approve_request(
    request_id: int,
    session: Annotated[Session, Depends(get_session)],
    clock: Annotated[Clock, Depends(get_clock)],
    approval: Optional[ApproveRequest] = None,
) -> ApiResponse[FulfillmentResponse]:
    """Allocate inventory to a pending request and mark it fulfilled."""
    approval = approval or ApproveRequest()
    service = RequestFulfillmentService(session, clock=clock)
    hold = BatchStatus.RESERVED if approval.reserve else BatchStatus.USED

    try:
        fulfillment = service.approve(
            request_id,
            processed_by=approval.processed_by,
            hold=hold,
        )
    except RequestNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found.")
    except InvalidRequestStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except InsufficientStockError as e:
        logger.warning(
            "Insufficient stock to approve request",
            extra={
                "request_id": request_id,
                "blood_type": str(e.blood_type),
                "available": e.available,
                "quantity": e.required,
            },
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceConflictError:
        logger.error(
            "Approval abandoned after repeated conflicts",
            exc_info=True,
            extra={"request_id": request_id},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=UNEXPECTED_ERROR,
        )

    logger.info(
        "Blood request fulfilled",
        extra={
            "request_id": request_id,
            "blood_type": str(fulfillment.request.blood_type),
            "quantity": fulfillment.units_allocated,
        },
    )
    return ApiResponse[FulfillmentResponse](
        message="Request fulfilled successfully and inventory updated.",
        data=FulfillmentResponse(
            request=RequestResponse.model_validate(fulfillment.request),
            allocations=[AllocationLineResponse.model_validate(line) for line in fulfillment.lines],
            units_allocated=fulfillment.units_allocated,
        ),
    )


@router.put("/{request_id}", response_model=ApiResponse[RequestResponse])
def update_request_status(
    request_id: int,
    update: RequestStatusUpdate,
    session: Annotated[Session, Depends(get_session)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ApiResponse[RequestResponse]:
    """Reject or cancel a pending request."""
    service = RequestFulfillmentService(session, clock=clock)
    transitions = {
        RequestStatus.REJECTED: service.reject,
        RequestStatus.CANCELLED: service.cancel,
    }

    close = transitions.get(update.status)
    if close is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Cannot set status to {update.status} directly. "
                "Use the approve endpoint to fulfil a request."
            ),
        )

    try:
        request = close(request_id, processed_by=update.processed_by)
    except RequestNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found.")
    except InvalidRequestStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(
        "Blood request closed",
        extra={"request_id": request_id, "blood_type": str(request.blood_type)},
    )
    return ApiResponse[RequestResponse](
        message="Request updated successfully.",
        data=RequestResponse.model_validate(request),
    )


@router.delete("/{request_id}", response_model=ApiResponse[None])
def delete_request(
    request_id: int,
    session: Annotated[Session, Depends(get_session)],
) -> ApiResponse[None]:
    """Remove a request record."""
    service = RequestService(session)

    try:
        service.delete_request(request_id)
    except RequestNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found.")

    logger.info("Blood request deleted", extra={"request_id": request_id})
    return ApiResponse[None](message="Request deleted successfully.")
