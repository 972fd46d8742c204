"""Restocking sweep and reorder request state machine."""
import pytest

from app.core.exceptions import InvalidTransitionError, NotFoundError
from app.models.reorder_request import ReorderRequest
from app.models.transaction import Transaction
from app.services import reorder_service


def test_reorder_quantity_floor():
    assert reorder_service.reorder_quantity(10) == 50
    assert reorder_service.reorder_quantity(0) == 50
    assert reorder_service.reorder_quantity(40) == 120


def test_sweep_creates_one_request_and_is_idempotent(db, make_medicine):
    medicine = make_medicine(quantity=5, reorder_threshold=10)
    make_medicine(name="Well Stocked", quantity=200)
    make_medicine(name="Discontinued", quantity=0, is_active=False)

    reorder_service.sweep(db)
    reorder_service.sweep(db)

    requests = db.query(ReorderRequest).all()
    assert len(requests) == 1
    request = requests[0]
    assert request.medicine_id == medicine.id
    assert request.status == "pending"
    assert request.requested_quantity == 50
    assert request.current_stock == 5
    assert request.requested_by is None


def test_sweep_refreshes_stock_snapshot(db, make_medicine):
    medicine = make_medicine(quantity=5, reorder_threshold=10)
    reorder_service.sweep(db)

    medicine.quantity = 2
    db.commit()
    reorder_service.sweep(db)

    request = db.query(ReorderRequest).one()
    assert request.current_stock == 2


def test_sweep_opens_new_request_after_cancel(db, make_medicine, pharmacist):
    make_medicine(quantity=1, reorder_threshold=10)
    reorder_service.sweep(db)
    first = db.query(ReorderRequest).one()
    reorder_service.cancel(db, first.id, pharmacist.id, reason="Supplier changed")

    reorder_service.sweep(db)
    statuses = sorted(r.status for r in db.query(ReorderRequest).all())
    assert statuses == ["cancelled", "pending"]


def test_full_lifecycle_restocks_medicine(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=5, reorder_threshold=10)
    reorder_service.sweep(db)
    request = db.query(ReorderRequest).one()

    request = reorder_service.approve(db, request.id, pharmacist.id)
    assert request.status == "approved"
    assert request.approved_by == pharmacist.id
    assert request.approved_at is not None

    request = reorder_service.mark_ordered(db, request.id, pharmacist.id)
    assert request.status == "ordered"
    assert request.ordered_at is not None

    request = reorder_service.mark_received(db, request.id, pharmacist.id)
    assert request.status == "received"
    assert request.received_quantity == 50

    db.refresh(medicine)
    assert medicine.quantity == 55

    entry = db.query(Transaction).filter(Transaction.medicine_id == medicine.id).one()
    assert entry.type == "purchase"
    assert entry.quantity == 50
    assert (entry.previous_stock, entry.new_stock) == (5, 55)


def test_receive_with_actual_quantity(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=0, reorder_threshold=10)
    reorder_service.sweep(db)
    request = db.query(ReorderRequest).one()
    reorder_service.approve(db, request.id, pharmacist.id)
    reorder_service.mark_ordered(db, request.id, pharmacist.id)

    request = reorder_service.mark_received(db, request.id, pharmacist.id, received_quantity=30)
    assert request.received_quantity == 30
    assert request.requested_quantity == 50
    db.refresh(medicine)
    assert medicine.quantity == 30


def test_out_of_order_transition_changes_nothing(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=5, reorder_threshold=10)
    reorder_service.sweep(db)
    request = db.query(ReorderRequest).one()

    with pytest.raises(InvalidTransitionError):
        reorder_service.mark_received(db, request.id, pharmacist.id)
    with pytest.raises(InvalidTransitionError):
        reorder_service.mark_ordered(db, request.id, pharmacist.id)

    db.refresh(request)
    db.refresh(medicine)
    assert request.status == "pending"
    assert medicine.quantity == 5
    assert db.query(Transaction).count() == 0


def test_cannot_cancel_ordered_request(db, make_medicine, pharmacist):
    make_medicine(quantity=5, reorder_threshold=10)
    reorder_service.sweep(db)
    request = db.query(ReorderRequest).one()
    reorder_service.approve(db, request.id, pharmacist.id)
    reorder_service.mark_ordered(db, request.id, pharmacist.id)

    with pytest.raises(InvalidTransitionError):
        reorder_service.cancel(db, request.id, pharmacist.id)


def test_unknown_request(db, pharmacist):
    with pytest.raises(NotFoundError):
        reorder_service.approve(db, 404, pharmacist.id)


def test_reorder_api_flow(client, db, make_medicine, pharmacist, headers):
    medicine = make_medicine(quantity=5, reorder_threshold=10)

    resp = client.post("/api/reorders/sweep", headers=headers(pharmacist))
    assert resp.status_code == 200
    pending = resp.json()["data"]["pending"]
    assert len(pending) == 1
    request_id = pending[0]["id"]

    resp = client.get("/api/reorders/pending", headers=headers(pharmacist))
    assert resp.json()["data"]["count"] == 1

    # Receive before order is rejected
    resp = client.post(f"/api/reorders/{request_id}/receive", headers=headers(pharmacist))
    assert resp.status_code == 409
    assert resp.json()["success"] is False

    assert client.post(f"/api/reorders/{request_id}/approve", headers=headers(pharmacist)).status_code == 200
    assert client.post(f"/api/reorders/{request_id}/order", headers=headers(pharmacist)).status_code == 200
    resp = client.post(
        f"/api/reorders/{request_id}/receive",
        json={"received_quantity": 60},
        headers=headers(pharmacist),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["reorder"]["status"] == "received"

    db.refresh(medicine)
    assert medicine.quantity == 65

    resp = client.get("/api/reorders", params={"status": "received"}, headers=headers(pharmacist))
    data = resp.json()["data"]
    assert data["pagination"]["total"] == 1


def test_missing_request_is_404(client, pharmacist, headers):
    resp = client.post("/api/reorders/77/approve", headers=headers(pharmacist))
    assert resp.status_code == 404
