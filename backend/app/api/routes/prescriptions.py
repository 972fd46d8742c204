"""Prescription routes: create, list, validate, dispense."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user, require_permission
from app.api.envelope import ok, pagination
from app.core.notifier import notifier
from app.core.permissions import Permission
from app.models.prescription import PrescriptionStatus
from app.models.user import User
from app.schemas.prescription import PrescriptionCreate, PrescriptionValidate, PrescriptionResponse
from app.schemas.transaction import TransactionRecord
from app.services import prescription_service

router = APIRouter()


@router.get("")
def list_prescriptions(
    status_filter: Optional[PrescriptionStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = prescription_service.list_prescriptions(
        db,
        status=status_filter.value if status_filter else None,
        search=search,
        page=page,
        limit=limit,
    )
    return ok({
        "prescriptions": [PrescriptionResponse.model_validate(p) for p in items],
        "pagination": pagination(page, limit, total),
    })


@router.get("/{prescription_id}")
def get_prescription(
    prescription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    prescription = prescription_service.get_prescription(db, prescription_id)
    return ok({"prescription": PrescriptionResponse.model_validate(prescription)})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_prescription(
    data: PrescriptionCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    prescription = prescription_service.create_prescription(db, data, current_user.id)
    background_tasks.add_task(notifier.broadcast, "prescription:created", {"prescription_id": prescription.id})
    return ok(
        {"prescription": PrescriptionResponse.model_validate(prescription)},
        "Prescription created successfully",
    )


@router.post("/{prescription_id}/validate")
def validate_prescription(
    prescription_id: int,
    background_tasks: BackgroundTasks,
    data: Optional[PrescriptionValidate] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VALIDATE_PRESCRIPTION)),
):
    """A rejected prescription is still a completed validation; it answers 400 with the errors."""
    outcome = prescription_service.validate_prescription(
        db, prescription_id, current_user.id, notes=data.notes if data else None
    )
    background_tasks.add_task(
        notifier.broadcast,
        "prescription:validated",
        {"prescription_id": prescription_id, "status": outcome.prescription.status},
    )
    body = PrescriptionResponse.model_validate(outcome.prescription)

    if not outcome.valid:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder({
                "success": False,
                "message": "Prescription validation failed",
                "errors": outcome.errors,
                "data": {"prescription": body},
            }),
            background=background_tasks,
        )
    return ok({"prescription": body}, "Prescription validated successfully")


@router.post("/{prescription_id}/dispense")
def dispense_prescription(
    prescription_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DISPENSE_PRESCRIPTION)),
):
    prescription, transactions = prescription_service.dispense_prescription(
        db, prescription_id, current_user.id
    )
    background_tasks.add_task(notifier.broadcast, "prescription:dispensed", {"prescription_id": prescription.id})
    background_tasks.add_task(notifier.broadcast, "inventory:changed")
    return ok(
        {
            "prescription": PrescriptionResponse.model_validate(prescription),
            "transactions": [TransactionRecord.model_validate(t) for t in transactions],
        },
        "Prescription dispensed successfully",
    )
