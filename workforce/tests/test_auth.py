"""
Tests for authentication: login, company login, master login, refresh and role guards
"""
from datetime import timedelta

from fastapi import Depends, status

from workforce.core.deps import require_roles
from workforce.core.security import REFRESH_TOKEN_TYPE, create_refresh_token, decode_token
from workforce.main import app
from workforce.models.license import License
from workforce.models.user import Role
from workforce.services.scope_service import TenantScope
from workforce.utils.datetime_utils import now_utc

from conftest import PASSWORD, make_user


def test_auth_login_success(client, test_employee):
    """Test successful login returns 200 and a token pair"""
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "EMP@acme.test", "password": PASSWORD}
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["token_type"] == "bearer"
    assert len(data["access_token"]) > 0
    assert len(data["refresh_token"]) > 0
    assert data["user"]["role"] == "employee"
    assert data["user"]["company_id"] == test_employee.company_id
    assert data["user"]["branch_name"] == "Bangalore HQ"

    payload = decode_token(data["access_token"])
    assert payload["sub"] == "emp@acme.test"
    # Employee tokens resolve identity from the subject
    assert "user_id" not in payload


def test_auth_login_wrong_password(client, test_employee):
    """Test login with wrong password returns 401"""
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": "wrongpassword"}
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    data = response.json()
    assert data["detail"] == "Invalid credentials"
    assert data["code"] == "AUTHENTICATION_FAILED"


def test_auth_login_unknown_user(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "nobody@acme.test", "password": PASSWORD}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_auth_inactive_user_blocked(client, db, test_company, test_branch):
    make_user(db, test_company, test_branch, "gone@acme.test", is_active=False)
    response = client.post(
        "/api/v1/auth/login",
        json={"username": "gone@acme.test", "password": PASSWORD}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_login_refused_when_license_expired(client, db, test_company, test_employee):
    """Expired license: 403 with remaining_days in the body"""
    license = db.query(License).filter(License.company_id == test_company.id).first()
    license.end_date = now_utc() - timedelta(days=2)
    db.commit()

    response = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": PASSWORD}
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    data = response.json()
    assert data["code"] == "LICENSE_EXPIRED"
    assert data["remaining_days"] == 0


def test_login_refused_when_license_inactive(client, db, test_company, test_employee):
    license = db.query(License).filter(License.company_id == test_company.id).first()
    license.is_active = False
    db.commit()

    response = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": PASSWORD}
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "LICENSE_EXPIRED"


def test_login_refused_when_company_inactive(client, db, test_company, test_employee):
    test_company.is_active = False
    db.commit()

    response = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": PASSWORD}
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "Company is inactive"


def test_bad_password_checked_before_license(client, db, test_company, test_employee):
    license = db.query(License).filter(License.company_id == test_company.id).first()
    license.end_date = now_utc() - timedelta(days=2)
    db.commit()

    response = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": "wrongpassword"}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_company_login_success(client, test_company, company_admin):
    response = client.post(
        "/api/v1/company/login",
        json={"company_code": "ACME", "username": "admin@acme.test", "password": PASSWORD}
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["company"] == {"id": test_company.id, "company_code": "ACME", "name": "Acme Corp"}
    assert data["user"]["role"] == "company_admin"
    assert data["user"]["user_id"] == company_admin.id


def test_company_login_rejects_employee(client, test_company, test_employee):
    """Plain employees use /auth/login, not the company login"""
    response = client.post(
        "/api/v1/company/login",
        json={"company_code": "acme", "username": "emp@acme.test", "password": PASSWORD}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_company_login_unknown_code(client, company_admin):
    response = client.post(
        "/api/v1/company/login",
        json={"company_code": "NOPE", "username": "admin@acme.test", "password": PASSWORD}
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_master_login_ignores_licenses(client, master_user):
    response = client.post(
        "/api/v1/master/login",
        json={"username": "master@platform.test", "password": PASSWORD}
    )

    assert response.status_code == status.HTTP_200_OK
    claims = response.json()["user"]
    assert claims["role"] == "master"
    assert claims["user_id"] == master_user.id
    assert claims.get("company_id") is None


def test_refresh_issues_new_pair(client, test_employee):
    login = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": PASSWORD}
    ).json()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": login["refresh_token"]})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    payload = decode_token(data["access_token"])
    assert payload["sub"] == "emp@acme.test"
    assert payload["company_id"] == test_employee.company_id
    assert decode_token(data["refresh_token"], expected_type=REFRESH_TOKEN_TYPE)["sub"] == "emp@acme.test"


def test_refresh_rejects_access_token(client, test_employee):
    login = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": PASSWORD}
    ).json()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": login["access_token"]})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_refresh_rejects_unknown_subject(client, test_employee):
    token = create_refresh_token("ghost@acme.test")
    response = client.post("/api/v1/auth/refresh", json={"refresh_token": token})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_refresh_rejects_deactivated_user(client, db, test_employee):
    token = create_refresh_token(test_employee.subject)
    test_employee.is_active = False
    db.commit()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": token})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_missing_token_rejected(client):
    response = client.get("/api/v1/company/info")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Authorization token required"


def test_role_guard(client, db, test_employee, company_admin):
    """require_roles lets listed roles through and refuses the rest with 403"""
    @app.get("/test/company-admin-only", include_in_schema=False)
    async def company_admin_only(scope: TenantScope = Depends(require_roles(Role.COMPANY_ADMIN))):
        return {"role": scope.role.value}

    employee_token = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": PASSWORD}
    ).json()["access_token"]
    response = client.get("/test/company-admin-only", headers={"Authorization": f"Bearer {employee_token}"})
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "Forbidden"

    admin_token = client.post(
        "/api/v1/auth/login",
        json={"username": "admin@acme.test", "password": PASSWORD}
    ).json()["access_token"]
    response = client.get("/test/company-admin-only", headers={"Authorization": f"Bearer {admin_token}"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"role": "company_admin"}


def test_refresh_refused_when_company_inactive(client, db, test_company, test_employee):
    token = create_refresh_token(test_employee.subject)
    test_company.is_active = False
    db.commit()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": token})
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["detail"] == "Company is inactive"


def test_refresh_refused_when_license_expired(client, db, test_company, test_employee):
    token = create_refresh_token(test_employee.subject)
    license = db.query(License).filter(License.company_id == test_company.id).first()
    license.end_date = now_utc() - timedelta(days=2)
    db.commit()

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": token})
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "LICENSE_EXPIRED"


def test_master_refresh_ignores_company_checks(client, db, test_company, master_user):
    test_company.is_active = False
    db.commit()

    token = create_refresh_token(master_user.subject)
    response = client.post("/api/v1/auth/refresh", json={"refresh_token": token})
    assert response.status_code == status.HTTP_200_OK
    assert decode_token(response.json()["access_token"])["role"] == "master"
