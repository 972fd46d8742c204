"""
Analytics API: demand trends and restocking projections.

All numbers are computed from the transaction log on each request.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_permission
from app.api.envelope import ok
from app.core.permissions import Permission
from app.models.user import User
from app.services import analytics_service

router = APIRouter()


@router.get("/demand-trends")
def demand_trends(
    medicine_id: int = Query(..., alias="medicineId", ge=1),
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_ANALYTICS)),
):
    """
    Daily demand for one medicine and a 30-day projection.
    Returns: {demand: {total, average_daily, daily_breakdown}, prediction: {...}, current_stock}
    """
    return ok(analytics_service.demand_trends(db, medicine_id, days))


@router.get("/inventory")
def inventory_analytics(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_ANALYTICS)),
):
    """Dashboard overview: stock status counts, sales, top sellers, category value."""
    return ok(analytics_service.inventory_analytics(db, days))


@router.get("/reorder-recommendations")
def reorder_recommendations(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_ANALYTICS)),
):
    return ok(analytics_service.reorder_recommendations(db, days))
