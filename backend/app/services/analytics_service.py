"""
Demand analytics over the transaction log.

Read-only. Demand means sale and dispense transactions; projections assume
the average daily demand of the look-back window continues.
"""
import logging
import math
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.audit import AuditLog
from app.core.exceptions import NotFoundError
from app.models.medicine import Medicine, EXPIRY_WARNING_DAYS, TIER_ORDER
from app.models.transaction import Transaction, DEMAND_TYPES

logger = logging.getLogger(__name__)

PROJECTION_DAYS = 30
NO_DEMAND_HORIZON = 999
STOCKOUT_WATCH_DAYS = 60


def _window(days: int):
    end = datetime.utcnow()
    return end - timedelta(days=days), end


def urgency_for(days_until_stockout: int) -> str:
    if days_until_stockout <= 7:
        return "critical"
    if days_until_stockout <= 14:
        return "high"
    if days_until_stockout <= 30:
        return "medium"
    return "low"


def _to_date_key(value) -> str:
    # SQLite hands back strings, PostgreSQL hands back datetimes
    if isinstance(value, datetime):
        return value.date().isoformat()
    return str(value)[:10]


def demand_trends(db: Session, medicine_id: int, days: int = 30) -> Dict:
    medicine = db.query(Medicine).filter(Medicine.id == medicine_id).first()
    if not medicine:
        raise NotFoundError("Medicine not found")

    start, end = _window(days)
    rows = (
        db.query(Transaction.created_at, Transaction.quantity)
        .filter(
            Transaction.medicine_id == medicine_id,
            Transaction.type.in_(DEMAND_TYPES),
            Transaction.created_at >= start,
            Transaction.created_at <= end,
        )
        .order_by(Transaction.created_at.asc())
        .all()
    )

    daily: Dict[str, int] = {}
    total = 0
    for created_at, quantity in rows:
        key = _to_date_key(created_at)
        daily[key] = daily.get(key, 0) + quantity
        total += quantity

    average_daily = total / days
    current_stock = medicine.quantity
    if current_stock > 0 and average_daily > 0:
        days_until_stockout = math.floor(current_stock / average_daily)
    else:
        days_until_stockout = 0

    AuditLog.log_workflow("analytics", "Demand trend analysis retrieved",
                          medicine_id=medicine_id, days=days, total_demand=total)

    return {
        "medicine_id": medicine.id,
        "medicine_name": medicine.name,
        "period": {"start_date": start, "end_date": end, "days": days},
        "demand": {
            "total": total,
            "average_daily": average_daily,
            "daily_breakdown": daily,
        },
        "prediction": {
            "next_30_days": average_daily * PROJECTION_DAYS,
            "days_until_stockout": days_until_stockout,
        },
        "current_stock": current_stock,
    }


def inventory_analytics(db: Session, days: int = 30) -> Dict:
    start, end = _window(days)
    today = date.today()

    active = db.query(Medicine).filter(Medicine.is_active.is_(True))
    total_medicines = active.count()
    low_stock_count = active.filter(Medicine.quantity <= Medicine.reorder_threshold).count()
    expiring_count = active.filter(
        Medicine.expiry_date > today,
        Medicine.expiry_date <= today + timedelta(days=EXPIRY_WARNING_DAYS),
    ).count()
    expired_count = active.filter(Medicine.expiry_date < today).count()

    in_window = (Transaction.created_at >= start, Transaction.created_at <= end)
    total_transactions = db.query(func.count(Transaction.id)).filter(*in_window).scalar() or 0

    sales_amount, items_sold = (
        db.query(
            func.coalesce(func.sum(Transaction.total_amount), 0),
            func.coalesce(func.sum(Transaction.quantity), 0),
        )
        .filter(Transaction.type.in_(DEMAND_TYPES), *in_window)
        .one()
    )

    top_selling = (
        db.query(
            Transaction.medicine_id,
            func.max(Transaction.medicine_name).label("medicine_name"),
            func.sum(Transaction.quantity).label("total_quantity"),
            func.sum(Transaction.total_amount).label("total_amount"),
        )
        .filter(Transaction.type.in_(DEMAND_TYPES), *in_window)
        .group_by(Transaction.medicine_id)
        .order_by(func.sum(Transaction.quantity).desc())
        .limit(10)
        .all()
    )

    categories = (
        db.query(
            Medicine.category,
            func.count(Medicine.id).label("count"),
            func.coalesce(func.sum(Medicine.quantity * Medicine.price_per_unit), 0).label("total_value"),
        )
        .filter(Medicine.is_active.is_(True))
        .group_by(Medicine.category)
        .all()
    )

    AuditLog.log_workflow("analytics", "Inventory analytics retrieved",
                          days=days, total_medicines=total_medicines,
                          low_stock=low_stock_count, expiring=expiring_count)

    return {
        "overview": {
            "total_medicines": total_medicines,
            "low_stock_count": low_stock_count,
            "expiring_count": expiring_count,
            "expired_count": expired_count,
        },
        "transactions": {
            "total": total_transactions,
            "period": {"start_date": start, "end_date": end, "days": days},
        },
        "sales": {
            "total_amount": float(sales_amount),
            "total_items": int(items_sold),
            "average_per_day": int(items_sold) / days,
        },
        "top_selling": [
            {
                "medicine_id": r.medicine_id,
                "medicine_name": r.medicine_name,
                "total_quantity": int(r.total_quantity or 0),
                "total_amount": float(r.total_amount or 0),
            }
            for r in top_selling
        ],
        "category_distribution": [
            {"category": r.category, "count": r.count, "total_value": float(r.total_value or 0)}
            for r in categories
        ],
    }


def _demand_by_medicine(db: Session, days: int) -> Dict[int, int]:
    start, end = _window(days)
    rows = (
        db.query(Transaction.medicine_id, func.sum(Transaction.quantity))
        .filter(
            Transaction.type.in_(DEMAND_TYPES),
            Transaction.created_at >= start,
            Transaction.created_at <= end,
        )
        .group_by(Transaction.medicine_id)
        .all()
    )
    return {medicine_id: int(total or 0) for medicine_id, total in rows}


def recommend(
    quantity: int,
    reorder_threshold: int,
    total_demand: int,
    days: int,
) -> Optional[Dict]:
    """Projection for one medicine, or None when it needs no recommendation."""
    average_daily = total_demand / days
    predicted = average_daily * PROJECTION_DAYS
    recommended_quantity = math.ceil(predicted + reorder_threshold)

    if average_daily > 0:
        days_until_stockout = math.floor(quantity / average_daily)
    else:
        days_until_stockout = NO_DEMAND_HORIZON

    if recommended_quantity <= 0:
        return None
    if quantity > reorder_threshold and days_until_stockout > STOCKOUT_WATCH_DAYS:
        return None

    return {
        "average_daily_demand": average_daily,
        "predicted_demand": predicted,
        "recommended_quantity": recommended_quantity,
        "days_until_stockout": days_until_stockout,
        "urgency": urgency_for(days_until_stockout),
    }


def reorder_recommendations(db: Session, days: int = 30) -> Dict:
    demand = _demand_by_medicine(db, days)
    medicines: List[Medicine] = db.query(Medicine).filter(Medicine.is_active.is_(True)).all()

    recommendations = []
    for medicine in medicines:
        projection = recommend(
            medicine.quantity,
            medicine.reorder_threshold,
            demand.get(medicine.id, 0),
            days,
        )
        if projection is None:
            continue
        recommendations.append({
            "medicine_id": medicine.id,
            "medicine_name": medicine.name,
            "current_stock": medicine.quantity,
            "reorder_threshold": medicine.reorder_threshold,
            "priority": medicine.priority,
            **projection,
        })

    recommendations.sort(key=lambda r: (
        TIER_ORDER.get(r["urgency"], len(TIER_ORDER)),
        TIER_ORDER.get(r["priority"], len(TIER_ORDER)),
    ))

    AuditLog.log_workflow("analytics", "Reorder recommendations generated",
                          count=len(recommendations), days=days)

    return {"recommendations": recommendations, "generated_at": datetime.utcnow()}
