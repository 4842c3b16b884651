"""
Tests for license validity, renewal and the master license endpoints
"""
from datetime import datetime, timedelta

import pytest
from fastapi import status

from workforce.core.errors import ValidationError
from workforce.models.license import License
from workforce.services import license_service
from workforce.utils.datetime_utils import UTC, ensure_utc, now_utc

from conftest import PASSWORD

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _license(db, company, end_date, is_active=True):
    license = db.query(License).filter(License.company_id == company.id).first()
    license.end_date = end_date
    license.is_active = is_active
    db.commit()
    db.refresh(license)
    return license


def master_headers(client):
    token = client.post(
        "/api/v1/master/login",
        json={"username": "master@platform.test", "password": PASSWORD}
    ).json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_remaining_days_rounds_partial_days_up(db, test_company):
    license = _license(db, test_company, NOW + timedelta(days=2, hours=1))
    assert license.remaining_days(NOW) == 3

    license = _license(db, test_company, NOW + timedelta(hours=1))
    status_ = license_service.evaluate_license(license, NOW)
    assert status_.valid
    assert status_.remaining_days == 1


def test_license_ending_now_is_invalid(db, test_company):
    license = _license(db, test_company, NOW)
    result = license_service.evaluate_license(license, NOW)
    assert not result.valid
    assert result.remaining_days == 0


def test_inactive_license_is_invalid(db, test_company):
    license = _license(db, test_company, NOW + timedelta(days=30), is_active=False)
    result = license_service.check_license(db, test_company.id, NOW)
    assert not result.valid
    assert result.remaining_days == 30
    assert license.is_active is False


def test_missing_license_is_invalid(db):
    result = license_service.check_license(db, 9999, NOW)
    assert not result.valid
    assert result.remaining_days == 0


def test_compute_end_date_clamps_month_end():
    start = datetime(2026, 1, 31, tzinfo=UTC)
    assert license_service.compute_end_date(start, 1, "months") == datetime(2026, 2, 28, tzinfo=UTC)
    assert license_service.compute_end_date(start, 2, "years") == datetime(2028, 1, 31, tzinfo=UTC)


@pytest.mark.parametrize("value,unit,field", [
    (0, "months", "duration_value"),
    (-3, "years", "duration_value"),
    (1, "weeks", "duration_unit"),
])
def test_compute_end_date_rejects_bad_duration(value, unit, field):
    with pytest.raises(ValidationError) as exc:
        license_service.compute_end_date(NOW, value, unit)
    assert exc.value.fields == [field]


def test_renew_extends_from_current_end_date(db, test_company):
    end = NOW + timedelta(days=10)
    license = _license(db, test_company, end, is_active=False)

    renewed = license_service.renew_license(db, license.id, 2, "months", now=NOW)

    assert ensure_utc(renewed.end_date) == ensure_utc(end).replace(month=5)
    assert renewed.is_active is True
    assert renewed.duration_unit == "months"


def test_renew_without_end_date_starts_now(db, test_company):
    license = _license(db, test_company, None)
    renewed = license_service.renew_license(db, license.id, 1, "years", now=NOW)
    assert ensure_utc(renewed.end_date) == datetime(2027, 3, 10, 12, 0, tzinfo=UTC)


def test_update_license_restarts_from_now(db, test_company):
    license = _license(db, test_company, NOW + timedelta(days=200))
    updated = license_service.update_license(db, license.id, 3, "months", now=NOW)
    assert ensure_utc(updated.start_date) == NOW
    assert ensure_utc(updated.end_date) == datetime(2026, 6, 10, 12, 0, tzinfo=UTC)


def test_refresh_states_only_deactivates_expired(db, test_company):
    license = _license(db, test_company, NOW - timedelta(minutes=1))

    touched = license_service.refresh_license_states(db, now=NOW)
    assert [lic.id for lic in touched] == [license.id]
    db.refresh(license)
    assert license.is_active is False

    assert license_service.refresh_license_states(db, now=NOW) == []


def test_validate_license_by_code(db, test_company):
    _license(db, test_company, now_utc() + timedelta(days=5))
    result = license_service.validate_license_by_code(db, " acme ")
    assert result == {"is_valid": True, "remaining_days": 5, "message": "License is valid"}

    _license(db, test_company, now_utc() - timedelta(days=5))
    result = license_service.validate_license_by_code(db, "ACME")
    assert result == {"is_valid": False, "remaining_days": 0, "message": "License has expired"}

    assert license_service.validate_license_by_code(db, "NOPE")["message"] == "License not found"


def test_license_endpoints_require_platform_role(client, test_company, company_admin):
    token = client.post(
        "/api/v1/auth/login",
        json={"username": "admin@acme.test", "password": PASSWORD}
    ).json()["access_token"]
    response = client.get("/api/v1/master/licenses", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_master_renews_license_over_http(client, db, master_user, test_company):
    headers = master_headers(client)
    license = db.query(License).filter(License.company_id == test_company.id).first()

    response = client.get(f"/api/v1/master/licenses/company/{test_company.id}", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    before = response.json()
    assert before["is_active"] is True
    assert before["remaining_days"] > 360

    response = client.post(
        f"/api/v1/master/licenses/{license.id}/renew",
        json={"duration_value": 6, "duration_unit": "months"},
        headers=headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["remaining_days"] > before["remaining_days"]

    response = client.post(
        f"/api/v1/master/licenses/{license.id}/renew",
        json={"duration_value": 0, "duration_unit": "months"},
        headers=headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["fields"] == ["duration_value"]


def test_public_license_validate_endpoint(client, test_company):
    response = client.post("/api/v1/master/licenses/validate", json={"company_code": "acme"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["is_valid"] is True
