"""
Key request endpoints: public submission, operator review.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.database import get_db
from app.core.auth import require_admin
from app.models.key_request import KeyRequestStatus
from app.services.approval_workflow import ApprovalWorkflow
from app.services.key_request_store import KeyRequestStore
from app.services.notifier import Notifier, get_notifier
from app.schemas.key_request import (
    KeyRequestApproveResponse,
    KeyRequestCreate,
    KeyRequestListResponse,
    KeyRequestRejectResponse,
    KeyRequestResponse,
    KeyRequestSubmitResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_workflow(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ApprovalWorkflow:
    return ApprovalWorkflow(db, notifier)


@router.post("", response_model=KeyRequestSubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_key_request(
    body: KeyRequestCreate,
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """
    Submit a request for an API key.

    The response does not depend on whether any follow-up email was delivered.
    """
    # Email delivery blocks on the network, keep it off the event loop
    result = await run_in_threadpool(workflow.submit, body.name, body.email, body.usage)
    key_request = result.request
    if key_request.status == KeyRequestStatus.APPROVED:
        message = "API key request approved, the key has been sent by email"
    else:
        message = "API key request submitted successfully"
    return KeyRequestSubmitResponse(id=key_request.id, status=key_request.status, message=message)


@router.get("", response_model=KeyRequestListResponse, dependencies=[Depends(require_admin)])
async def list_key_requests(
    status_filter: Optional[KeyRequestStatus] = Query(None, alias="status", description="Filter by status"),
    db: Session = Depends(get_db),
):
    """List key requests, newest first (operator only)."""
    requests = KeyRequestStore(db).list(status=status_filter)
    return KeyRequestListResponse(
        items=[KeyRequestResponse.model_validate(r) for r in requests],
        total=len(requests),
    )


@router.patch(
    "/{request_id}/approve",
    response_model=KeyRequestApproveResponse,
    dependencies=[Depends(require_admin)],
)
async def approve_key_request(
    request_id: int,
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """
    Approve a pending key request and email the new key (operator only).

    404 if the request does not exist, 409 if it was already decided.
    """
    result = await run_in_threadpool(workflow.approve, request_id)
    if result.notification.delivered:
        message = "Key request approved and API key sent"
    else:
        message = "Key request approved, but the API key email could not be delivered"
    return KeyRequestApproveResponse(
        request_id=request_id,
        api_key_id=result.api_key_id,
        notification_sent=result.notification.delivered,
        message=message,
    )


@router.patch(
    "/{request_id}/reject",
    response_model=KeyRequestRejectResponse,
    dependencies=[Depends(require_admin)],
)
async def reject_key_request(
    request_id: int,
    workflow: ApprovalWorkflow = Depends(get_workflow),
):
    """Reject a pending key request (operator only)."""
    result = await run_in_threadpool(workflow.reject, request_id)
    return KeyRequestRejectResponse(
        request_id=request_id,
        notification_sent=result.notification.delivered,
        message="Key request rejected",
    )
