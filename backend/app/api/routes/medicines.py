"""Medicine inventory routes."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_current_user, require_permission
from app.api.envelope import ok, pagination
from app.core.notifier import notifier
from app.core.permissions import Permission
from app.models.medicine import MedicineCategory, MedicinePriority
from app.models.user import User
from app.schemas.medicine import MedicineCreate, MedicineUpdate, MedicineResponse
from app.services import inventory_service

router = APIRouter()


@router.get("")
def list_medicines(
    search: Optional[str] = None,
    category: Optional[MedicineCategory] = None,
    priority: Optional[MedicinePriority] = None,
    low_stock: bool = Query(False, alias="lowStock"),
    expiring_soon: bool = Query(False, alias="expiringSoon"),
    expired: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = inventory_service.list_medicines(
        db,
        page=page,
        limit=limit,
        search=search,
        category=category.value if category else None,
        priority=priority.value if priority else None,
        low_stock=low_stock,
        expiring_soon=expiring_soon,
        expired=expired,
    )
    return ok({
        "medicines": [MedicineResponse.model_validate(m) for m in items],
        "pagination": pagination(page, limit, total),
    })


@router.get("/expiry-alerts")
def expiry_alerts(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    expiring, expired = inventory_service.expiry_alerts(db, days)
    return ok({
        "expiring_soon": [MedicineResponse.model_validate(m) for m in expiring],
        "expired": [MedicineResponse.model_validate(m) for m in expired],
        "counts": {"expiring_soon": len(expiring), "expired": len(expired)},
    })


@router.get("/{medicine_id}")
def get_medicine(
    medicine_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    medicine = inventory_service.get_medicine(db, medicine_id)
    return ok({"medicine": MedicineResponse.model_validate(medicine)})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_medicine(
    data: MedicineCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_INVENTORY)),
):
    medicine = inventory_service.create_medicine(db, data, current_user.id)
    background_tasks.add_task(notifier.broadcast, "medicine:created", {"medicine_id": medicine.id})
    return ok({"medicine": MedicineResponse.model_validate(medicine)}, "Medicine created successfully")


@router.put("/{medicine_id}")
def update_medicine(
    medicine_id: int,
    data: MedicineUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_INVENTORY)),
):
    medicine = inventory_service.update_medicine(db, medicine_id, data, current_user.id)
    background_tasks.add_task(notifier.broadcast, "medicine:updated", {"medicine_id": medicine.id})
    return ok({"medicine": MedicineResponse.model_validate(medicine)}, "Medicine updated successfully")


@router.delete("/{medicine_id}")
def delete_medicine(
    medicine_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DELETE_INVENTORY)),
):
    """Soft delete: the medicine stays for transaction history."""
    medicine = inventory_service.deactivate_medicine(db, medicine_id, current_user.id)
    background_tasks.add_task(notifier.broadcast, "medicine:deleted", {"medicine_id": medicine.id})
    return ok(None, "Medicine deleted successfully")
