"""Registration, login and the auth gateway's failure responses."""
from datetime import timedelta

from app.core.permissions import Permission, UserRole, role_has_permission
from app.core.security import create_access_token, decode_access_token
from conftest import TEST_PASSWORD


def test_register_login_profile(client):
    resp = client.post("/api/auth/register", json={
        "name": "  Neha Shah ",
        "email": "Neha@Pharmacy.Example.COM",
        "password": "longenough",
    })
    assert resp.status_code == 201
    user = resp.json()["data"]["user"]
    assert user["email"] == "neha@pharmacy.example.com"
    assert user["name"] == "Neha Shah"
    assert user["role"] == "staff"

    resp = client.post("/api/auth/login", json={"email": "neha@pharmacy.example.com", "password": "longenough"})
    assert resp.status_code == 200
    token = resp.json()["data"]["token"]
    claims = decode_access_token(token)
    assert claims["email"] == "neha@pharmacy.example.com"
    assert claims["role"] == "staff"

    resp = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["email"] == "neha@pharmacy.example.com"


def test_register_ignores_elevated_role_from_anonymous_caller(client):
    resp = client.post("/api/auth/register", json={
        "name": "Mallory", "email": "mallory@pharmacy.example.com", "password": "longenough", "role": "admin",
    })
    assert resp.status_code == 201
    assert resp.json()["data"]["user"]["role"] == "staff"


def test_register_ignores_elevated_role_from_non_admin(client, pharmacist, headers):
    resp = client.post("/api/auth/register", json={
        "name": "Second Pharmacist", "email": "rx2@pharmacy.example.com", "password": "longenough",
        "role": "pharmacist",
    }, headers=headers(pharmacist))
    assert resp.status_code == 201
    assert resp.json()["data"]["user"]["role"] == "staff"


def test_admin_can_register_with_role(client, admin, headers):
    resp = client.post("/api/auth/register", json={
        "name": "New Pharmacist", "email": "rx@pharmacy.example.com", "password": "longenough",
        "role": "pharmacist",
    }, headers=headers(admin))
    assert resp.status_code == 201
    assert resp.json()["data"]["user"]["role"] == "pharmacist"


def test_register_rejects_short_password_and_duplicates(client, staff):
    resp = client.post("/api/auth/register", json={"name": "Shorty", "email": "s@pharmacy.example.com", "password": "123"})
    assert resp.status_code == 400

    resp = client.post("/api/auth/register", json={
        "name": "Copy", "email": staff.email, "password": "longenough",
    })
    assert resp.status_code == 400
    assert resp.json()["message"] == "User with this email already exists"


def test_login_failures(client, make_user):
    make_user(UserRole.STAFF, email="active@pharmacy.example.com")
    make_user(UserRole.STAFF, email="gone@pharmacy.example.com", is_active=False)

    resp = client.post("/api/auth/login", json={"email": "active@pharmacy.example.com", "password": "wrong"})
    assert resp.status_code == 401

    resp = client.post("/api/auth/login", json={"email": "gone@pharmacy.example.com", "password": TEST_PASSWORD})
    assert resp.status_code == 403


def test_missing_token(client):
    resp = client.get("/api/medicines")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Authentication required. Please provide a valid token."


def test_malformed_header(client):
    resp = client.get("/api/medicines", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Authentication required. Please provide a valid token."


def test_expired_token(client, staff):
    token = create_access_token(str(staff.id), staff.email, staff.role, expires_delta=timedelta(seconds=-5))
    resp = client.get("/api/medicines", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token has expired. Please login again."


def test_invalid_token(client):
    resp = client.get("/api/medicines", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token. Please login again."


def test_token_for_unknown_user(client):
    token = create_access_token("9999", "ghost@pharmacy.example.com", "admin")
    resp = client.get("/api/medicines", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token. Please login again."


def test_deactivated_account(client, make_user, headers):
    user = make_user(UserRole.PHARMACIST, is_active=False)
    resp = client.get("/api/medicines", headers=headers(user))
    assert resp.status_code == 403
    assert resp.json()["message"] == "Your account has been deactivated. Please contact an administrator."


def test_role_permission_table():
    assert all(role_has_permission(UserRole.ADMIN, p) for p in Permission)
    assert not role_has_permission(UserRole.PHARMACIST, Permission.DELETE_INVENTORY)
    assert role_has_permission(UserRole.PHARMACIST, Permission.DISPENSE_PRESCRIPTION)
    assert role_has_permission(UserRole.STAFF, Permission.MANAGE_INVENTORY)
    assert not role_has_permission(UserRole.STAFF, Permission.VIEW_ANALYTICS)


def test_staff_is_kept_out_of_pharmacist_routes(client, staff, make_medicine, headers):
    medicine = make_medicine()
    forbidden = [
        ("post", "/api/prescriptions/1/validate"),
        ("post", "/api/prescriptions/1/dispense"),
        ("post", "/api/reorders/1/approve"),
        ("post", "/api/reorders/sweep"),
        ("get", "/api/analytics/inventory"),
        ("delete", f"/api/medicines/{medicine.id}"),
    ]
    for method, path in forbidden:
        resp = getattr(client, method)(path, headers=headers(staff))
        assert resp.status_code == 403, path
        assert resp.json()["message"] == "You do not have permission to access this resource."


def test_pharmacist_cannot_delete_medicines(client, pharmacist, make_medicine, headers):
    medicine = make_medicine()
    resp = client.delete(f"/api/medicines/{medicine.id}", headers=headers(pharmacist))
    assert resp.status_code == 403


def test_health_is_public(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
