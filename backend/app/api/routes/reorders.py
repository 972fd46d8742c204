"""Reorder request routes: listing, state transitions and a manual sweep."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user, require_permission
from app.api.envelope import ok, pagination
from app.core.notifier import notifier
from app.core.permissions import Permission
from app.models.reorder_request import ReorderStatus
from app.models.user import User
from app.schemas.reorder import ReorderCancel, ReorderReceive, ReorderRequestResponse
from app.services import reorder_service

router = APIRouter()


@router.get("")
def list_reorders(
    status_filter: Optional[ReorderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = reorder_service.list_requests(
        db,
        status=status_filter.value if status_filter else None,
        page=page,
        limit=limit,
    )
    return ok({
        "reorders": [ReorderRequestResponse.model_validate(r) for r in items],
        "pagination": pagination(page, limit, total),
    })


@router.get("/pending")
def pending_reorders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items = reorder_service.pending_requests(db)
    return ok({
        "reorders": [ReorderRequestResponse.model_validate(r) for r in items],
        "count": len(items),
    })


@router.post("/sweep")
def run_sweep(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_REORDERS)),
):
    """Run the restocking sweep now instead of waiting for the next scheduled run."""
    reorder_service.sweep(db)
    pending = reorder_service.pending_requests(db)
    background_tasks.add_task(notifier.broadcast, "reorder:updated")
    return ok(
        {"pending": [ReorderRequestResponse.model_validate(r) for r in pending]},
        "Reorder sweep completed",
    )


@router.post("/{request_id}/approve")
def approve_reorder(
    request_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_REORDERS)),
):
    request = reorder_service.approve(db, request_id, current_user.id)
    background_tasks.add_task(notifier.broadcast, "reorder:updated", {"reorder_id": request.id})
    return ok({"reorder": ReorderRequestResponse.model_validate(request)}, "Reorder request approved")


@router.post("/{request_id}/order")
def order_reorder(
    request_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_REORDERS)),
):
    request = reorder_service.mark_ordered(db, request_id, current_user.id)
    background_tasks.add_task(notifier.broadcast, "reorder:updated", {"reorder_id": request.id})
    return ok({"reorder": ReorderRequestResponse.model_validate(request)}, "Reorder marked as ordered")


@router.post("/{request_id}/receive")
def receive_reorder(
    request_id: int,
    background_tasks: BackgroundTasks,
    data: Optional[ReorderReceive] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_REORDERS)),
):
    request = reorder_service.mark_received(
        db,
        request_id,
        current_user.id,
        received_quantity=data.received_quantity if data else None,
    )
    background_tasks.add_task(notifier.broadcast, "reorder:updated", {"reorder_id": request.id})
    background_tasks.add_task(notifier.broadcast, "inventory:changed")
    return ok({"reorder": ReorderRequestResponse.model_validate(request)}, "Reorder received and stock updated")


@router.post("/{request_id}/cancel")
def cancel_reorder(
    request_id: int,
    background_tasks: BackgroundTasks,
    data: Optional[ReorderCancel] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_REORDERS)),
):
    request = reorder_service.cancel(db, request_id, current_user.id, reason=data.reason if data else None)
    background_tasks.add_task(notifier.broadcast, "reorder:updated", {"reorder_id": request.id})
    return ok({"reorder": ReorderRequestResponse.model_validate(request)}, "Reorder request cancelled")
