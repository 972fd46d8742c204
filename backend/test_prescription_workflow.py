"""Prescription validation and dispensing."""
import re
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from app.core.exceptions import InsufficientStockError, InvalidStateError
from app.models.prescription import Prescription
from app.models.transaction import Transaction
from app.schemas.prescription import PrescriptionCreate
from app.services import prescription_service


def _create(db, *items):
    data = PrescriptionCreate(
        patient_name="Asha Rao",
        patient_age=42,
        patient_gender="female",
        doctor_name="Dr. Mehta",
        doctor_license="MH-12345",
        items=[
            {
                "medicine_id": medicine.id,
                "medicine_name": medicine.name,
                "quantity": quantity,
                "dosage": "1 tablet twice daily",
                "duration": 5,
            }
            for medicine, quantity in items
        ],
    )
    return prescription_service.create_prescription(db, data)


def test_prescription_number_format():
    number = prescription_service.generate_prescription_number()
    assert re.fullmatch(r"RX-\d{13}-[A-Z0-9]{9}", number)


def test_created_prescription_keeps_item_order(db, make_medicine):
    a = make_medicine(name="Alpha")
    b = make_medicine(name="Beta")
    prescription = _create(db, (b, 1), (a, 2))
    assert prescription.status == "pending"
    assert [i.medicine_name for i in prescription.items] == ["Beta", "Alpha"]


def test_validation_rejects_insufficient_stock_without_touching_stock(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=2)
    prescription = _create(db, (medicine, 3))

    outcome = prescription_service.validate_prescription(db, prescription.id, pharmacist.id)

    assert not outcome.valid
    assert outcome.prescription.status == "rejected"
    assert "Insufficient stock" in outcome.prescription.rejection_reason
    assert outcome.prescription.validated_by == pharmacist.id
    db.refresh(medicine)
    assert medicine.quantity == 2


def test_validation_records_first_failure_per_item(db, make_medicine, pharmacist):
    expired = make_medicine(name="Old Syrup", quantity=1, expiry_date=date.today() - timedelta(days=3))
    inactive = make_medicine(name="Withdrawn", is_active=False)
    prescription = _create(db, (expired, 5), (inactive, 1))

    outcome = prescription_service.validate_prescription(db, prescription.id, pharmacist.id)

    # Stock is checked before expiry
    assert outcome.errors == [
        "Insufficient stock for Old Syrup. Available: 1, Required: 5",
        "Medicine Withdrawn is not active",
    ]
    assert outcome.prescription.rejection_reason == "; ".join(outcome.errors)


def test_validation_rejects_missing_medicine(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=20)
    ghost = SimpleNamespace(id=9999, name="Ghost Pill")
    prescription = _create(db, (medicine, 2), (ghost, 1))

    outcome = prescription_service.validate_prescription(db, prescription.id, pharmacist.id)

    assert outcome.prescription.status == "rejected"
    assert outcome.errors == ["Medicine Ghost Pill not found"]
    db.refresh(medicine)
    assert medicine.quantity == 20


def test_validation_rejects_expired_medicine_with_enough_stock(db, make_medicine, pharmacist):
    expired = make_medicine(name="Old Syrup", quantity=50, expiry_date=date.today() - timedelta(days=1))
    prescription = _create(db, (expired, 5))

    outcome = prescription_service.validate_prescription(db, prescription.id, pharmacist.id)

    assert outcome.prescription.status == "rejected"
    assert outcome.prescription.rejection_reason == "Medicine Old Syrup has expired"


def test_validation_passes_and_leaves_stock(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=20)
    prescription = _create(db, (medicine, 5))

    outcome = prescription_service.validate_prescription(db, prescription.id, pharmacist.id, notes="Checked")

    assert outcome.valid
    assert outcome.prescription.status == "validated"
    assert outcome.prescription.notes == "Checked"
    db.refresh(medicine)
    assert medicine.quantity == 20


def test_only_pending_can_be_validated(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=20)
    prescription = _create(db, (medicine, 5))
    prescription_service.validate_prescription(db, prescription.id, pharmacist.id)

    with pytest.raises(InvalidStateError):
        prescription_service.validate_prescription(db, prescription.id, pharmacist.id)


def test_dispense_debits_stock_and_logs(db, make_medicine, pharmacist):
    a = make_medicine(name="Alpha", quantity=20)
    b = make_medicine(name="Beta", quantity=8)
    prescription = _create(db, (a, 5), (b, 8))
    prescription_service.validate_prescription(db, prescription.id, pharmacist.id)

    prescription, transactions = prescription_service.dispense_prescription(db, prescription.id, pharmacist.id)

    assert prescription.status == "dispensed"
    assert prescription.dispensed_by == pharmacist.id
    db.refresh(a)
    db.refresh(b)
    assert (a.quantity, b.quantity) == (15, 0)
    assert [(t.medicine_id, t.type, t.quantity, t.previous_stock, t.new_stock) for t in transactions] == [
        (a.id, "dispense", 5, 20, 15),
        (b.id, "dispense", 8, 8, 0),
    ]
    assert all(t.prescription_id == prescription.id for t in transactions)


def test_dispense_requires_validation(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=20)
    prescription = _create(db, (medicine, 5))

    with pytest.raises(InvalidStateError) as exc:
        prescription_service.dispense_prescription(db, prescription.id, pharmacist.id)
    assert exc.value.message == "Prescription must be validated before dispensing. Current status: pending"


def test_dispense_is_all_or_nothing(db, make_medicine, pharmacist):
    a = make_medicine(name="Alpha", quantity=20)
    b = make_medicine(name="Beta", quantity=10)
    prescription = _create(db, (a, 5), (b, 10))
    prescription_service.validate_prescription(db, prescription.id, pharmacist.id)

    # Stock drops between validation and dispensing
    b.quantity = 4
    db.commit()

    with pytest.raises(InsufficientStockError):
        prescription_service.dispense_prescription(db, prescription.id, pharmacist.id)

    db.refresh(a)
    assert a.quantity == 20
    assert db.query(Transaction).filter(Transaction.type == "dispense").count() == 0
    assert db.get(Prescription, prescription.id).status == "validated"


def test_dispense_twice_fails(db, make_medicine, pharmacist):
    medicine = make_medicine(quantity=20)
    prescription = _create(db, (medicine, 5))
    prescription_service.validate_prescription(db, prescription.id, pharmacist.id)
    prescription_service.dispense_prescription(db, prescription.id, pharmacist.id)

    with pytest.raises(InvalidStateError):
        prescription_service.dispense_prescription(db, prescription.id, pharmacist.id)
    db.refresh(medicine)
    assert medicine.quantity == 15


def _api_payload(medicine, quantity):
    return {
        "patient_name": "Ravi Kumar",
        "patient_age": 30,
        "patient_gender": "male",
        "doctor_name": "Dr. Iyer",
        "doctor_license": "KA-998",
        "items": [{
            "medicine_id": medicine.id,
            "medicine_name": medicine.name,
            "quantity": quantity,
            "dosage": "5ml thrice daily",
            "duration": 3,
        }],
    }


def test_prescription_api_rejection_returns_errors(client, make_medicine, staff, pharmacist, headers):
    medicine = make_medicine(quantity=2)
    resp = client.post("/api/prescriptions", json=_api_payload(medicine, 3), headers=headers(staff))
    assert resp.status_code == 201
    prescription_id = resp.json()["data"]["prescription"]["id"]

    resp = client.post(f"/api/prescriptions/{prescription_id}/validate", headers=headers(pharmacist))
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["errors"] == ["Insufficient stock for Paracetamol 500mg. Available: 2, Required: 3"]
    assert body["data"]["prescription"]["status"] == "rejected"


def test_prescription_api_dispense(client, db, make_medicine, staff, pharmacist, headers):
    medicine = make_medicine(quantity=10)
    resp = client.post("/api/prescriptions", json=_api_payload(medicine, 4), headers=headers(staff))
    prescription_id = resp.json()["data"]["prescription"]["id"]

    resp = client.post(f"/api/prescriptions/{prescription_id}/dispense", headers=headers(pharmacist))
    assert resp.status_code == 400

    resp = client.post(
        f"/api/prescriptions/{prescription_id}/validate",
        json={"notes": "OK"},
        headers=headers(pharmacist),
    )
    assert resp.status_code == 200

    resp = client.post(f"/api/prescriptions/{prescription_id}/dispense", headers=headers(pharmacist))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["prescription"]["status"] == "dispensed"
    assert len(data["transactions"]) == 1

    db.refresh(medicine)
    assert medicine.quantity == 6

    listing = client.get("/api/prescriptions", params={"status": "dispensed", "search": "ravi"},
                         headers=headers(staff)).json()["data"]
    assert listing["pagination"]["total"] == 1


def test_prescription_requires_items(client, staff, headers):
    payload = {
        "patient_name": "No Items",
        "patient_age": 30,
        "patient_gender": "male",
        "doctor_name": "Dr. Iyer",
        "doctor_license": "KA-998",
        "items": [],
    }
    resp = client.post("/api/prescriptions", json=payload, headers=headers(staff))
    assert resp.status_code == 400


def test_prescription_api_unknown_medicine_is_rejected_on_validation(client, staff, pharmacist, headers):
    payload = _api_payload(SimpleNamespace(id=9999, name="Ghost Pill"), 1)
    resp = client.post("/api/prescriptions", json=payload, headers=headers(staff))
    assert resp.status_code == 201
    prescription_id = resp.json()["data"]["prescription"]["id"]

    resp = client.post(f"/api/prescriptions/{prescription_id}/validate", headers=headers(pharmacist))
    assert resp.status_code == 400
    body = resp.json()
    assert body["errors"] == ["Medicine Ghost Pill not found"]
    assert body["data"]["prescription"]["status"] == "rejected"
