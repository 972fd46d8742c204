"""
Restocking workflow.

The sweep compares stock to threshold and raises (or refreshes) one open
reorder request per low-stock medicine. Requests then move through
PENDING -> APPROVED -> ORDERED -> RECEIVED, or are CANCELLED while open.

Each transition is a single conditional UPDATE on (id, allowed source
statuses); a request that is not in a source status is left untouched.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.exceptions import InvalidTransitionError, NotFoundError
from app.models.medicine import Medicine
from app.models.reorder_request import ReorderRequest, ReorderStatus, OPEN_STATUSES
from app.models.transaction import TransactionType
from app.services.transaction_service import record_transaction

logger = logging.getLogger(__name__)

MIN_REORDER_QUANTITY = 50
REORDER_MULTIPLIER = 3


def reorder_quantity(reorder_threshold: int) -> int:
    return max(REORDER_MULTIPLIER * reorder_threshold, MIN_REORDER_QUANTITY)


def sweep(db: Session) -> None:
    """
    Raise a pending request for every active medicine at or below its
    threshold that has no open request; refresh the stock snapshot on
    requests that are already open.

    Each medicine is committed on its own, so one failure does not undo the
    rest. Database errors are logged and re-raised.
    """
    created = updated = 0
    try:
        low_stock = (
            db.query(Medicine)
            .filter(
                Medicine.is_active.is_(True),
                Medicine.quantity <= Medicine.reorder_threshold,
            )
            .all()
        )

        for medicine in low_stock:
            existing = (
                db.query(ReorderRequest)
                .filter(
                    ReorderRequest.medicine_id == medicine.id,
                    ReorderRequest.status.in_(OPEN_STATUSES),
                )
                .first()
            )

            if existing:
                if existing.current_stock != medicine.quantity:
                    existing.current_stock = medicine.quantity
                    db.commit()
                    updated += 1
                continue

            request = ReorderRequest(
                medicine_id=medicine.id,
                medicine_name=medicine.name,
                current_stock=medicine.quantity,
                reorder_threshold=medicine.reorder_threshold,
                requested_quantity=reorder_quantity(medicine.reorder_threshold),
                status=ReorderStatus.PENDING.value,
                requested_by=None,
                notes="Raised automatically by the restocking sweep",
            )
            db.add(request)
            try:
                db.commit()
            except IntegrityError:
                # Another sweep opened one first
                db.rollback()
                logger.info(f"Open reorder request already exists for medicine {medicine.id}")
                continue
            created += 1
            logger.info(
                f"[Reorder] Created request for {medicine.name}: "
                f"stock {medicine.quantity}/{medicine.reorder_threshold}, "
                f"requesting {request.requested_quantity}"
            )

        AuditLog.log_workflow(
            "reordering",
            "Sweep completed",
            created=created,
            updated=updated,
            checked=len(low_stock),
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Reorder] Sweep failed: {e}")
        raise


def list_requests(
    db: Session,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[ReorderRequest], int]:
    q = db.query(ReorderRequest)
    if status:
        q = q.filter(ReorderRequest.status == status)
    total = q.count()
    items = (
        q.order_by(ReorderRequest.created_at.desc(), ReorderRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def pending_requests(db: Session) -> List[ReorderRequest]:
    return (
        db.query(ReorderRequest)
        .filter(ReorderRequest.status == ReorderStatus.PENDING.value)
        .order_by(ReorderRequest.created_at.asc(), ReorderRequest.id.asc())
        .all()
    )


def get_request(db: Session, request_id: int) -> ReorderRequest:
    request = db.query(ReorderRequest).filter(ReorderRequest.id == request_id).first()
    if not request:
        raise NotFoundError("Reorder request not found")
    return request


def _transition(
    db: Session,
    request_id: int,
    sources: Iterable[str],
    values: Dict,
    action: str,
) -> ReorderRequest:
    """Move a request from one of `sources` to the status in `values`; no commit."""
    sources = tuple(sources)
    rows = (
        db.query(ReorderRequest)
        .filter(ReorderRequest.id == request_id, ReorderRequest.status.in_(sources))
        .update(values, synchronize_session="fetch")
    )
    if rows == 0:
        db.rollback()
        current = get_request(db, request_id)
        raise InvalidTransitionError(
            f"Cannot {action} a reorder request with status '{current.status}'"
        )
    return get_request(db, request_id)


def approve(db: Session, request_id: int, user_id: int) -> ReorderRequest:
    request = _transition(
        db,
        request_id,
        [ReorderStatus.PENDING.value],
        {
            "status": ReorderStatus.APPROVED.value,
            "approved_by": user_id,
            "approved_at": datetime.utcnow(),
        },
        "approve",
    )
    db.commit()
    db.refresh(request)
    AuditLog.log_action("approve", "reorder_request", request.id, user_id)
    return request


def mark_ordered(db: Session, request_id: int, user_id: Optional[int] = None) -> ReorderRequest:
    request = _transition(
        db,
        request_id,
        [ReorderStatus.APPROVED.value],
        {"status": ReorderStatus.ORDERED.value, "ordered_at": datetime.utcnow()},
        "order",
    )
    db.commit()
    db.refresh(request)
    AuditLog.log_action("order", "reorder_request", request.id, user_id)
    return request


def mark_received(
    db: Session,
    request_id: int,
    user_id: int,
    received_quantity: Optional[int] = None,
) -> ReorderRequest:
    """
    Close an ordered request and add the delivered quantity to stock.

    The status change, the stock increment and the purchase Transaction are
    committed together.
    """
    request = get_request(db, request_id)
    quantity = received_quantity or request.requested_quantity

    request = _transition(
        db,
        request_id,
        [ReorderStatus.ORDERED.value],
        {
            "status": ReorderStatus.RECEIVED.value,
            "received_at": datetime.utcnow(),
            "received_quantity": quantity,
        },
        "receive",
    )

    try:
        db.query(Medicine).filter(Medicine.id == request.medicine_id).update(
            {Medicine.quantity: Medicine.quantity + quantity},
            synchronize_session=False,
        )
        medicine = db.query(Medicine).filter(Medicine.id == request.medicine_id).first()
        db.refresh(medicine)
        record_transaction(
            db,
            medicine,
            TransactionType.PURCHASE,
            quantity=quantity,
            previous_stock=medicine.quantity - quantity,
            new_stock=medicine.quantity,
            performed_by=user_id,
            notes=f"Reorder request #{request.id} received",
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(request)
    AuditLog.log_action("receive", "reorder_request", request.id, user_id,
                        changes={"medicine_id": request.medicine_id, "quantity": quantity})
    return request


def cancel(db: Session, request_id: int, user_id: int, reason: Optional[str] = None) -> ReorderRequest:
    values = {
        "status": ReorderStatus.CANCELLED.value,
        "cancelled_at": datetime.utcnow(),
    }
    if reason:
        values["notes"] = reason
    request = _transition(db, request_id, OPEN_STATUSES, values, "cancel")
    db.commit()
    db.refresh(request)
    AuditLog.log_action("cancel", "reorder_request", request.id, user_id,
                        changes={"reason": reason} if reason else None)
    return request
