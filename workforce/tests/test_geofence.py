"""
Tests for distance computation, zone classification and zone management
"""
from types import SimpleNamespace

import pytest
from fastapi import status
from sqlalchemy.exc import OperationalError

from workforce.core.errors import AuthorizationError, NotFoundError, ValidationError
from workforce.models.attendance import GeofenceStatus
from workforce.models.geofence import EmployeeGeofenceZone, GeofenceZone
from workforce.models.module_access import BranchManagerModule, CompanyModule
from workforce.models.user import Role
from workforce.services import geofence_service, master_service
from workforce.services.geofence_service import classify, classify_against, haversine_distance_m
from workforce.services.scope_service import TenantScope

from conftest import PASSWORD

BANGALORE = (12.9716, 77.5946)
DELHI = (28.6139, 77.2090)


def zone(id, lat, lng, radius, name=None):
    return SimpleNamespace(id=id, name=name or f"zone-{id}", latitude=lat, longitude=lng, radius_meters=radius)


def test_distance_is_zero_for_same_point():
    assert haversine_distance_m(*BANGALORE, *BANGALORE) == 0


def test_distance_is_symmetric():
    assert haversine_distance_m(*BANGALORE, *DELHI) == pytest.approx(haversine_distance_m(*DELHI, *BANGALORE))


def test_distance_bangalore_delhi():
    # Roughly 1,740 km great-circle
    assert haversine_distance_m(*BANGALORE, *DELHI) == pytest.approx(1_740_000, rel=0.01)


def test_distance_antipodal_points_is_finite():
    assert haversine_distance_m(0, 0, 0, 180) == pytest.approx(20_015_086, rel=0.001)


def test_zone_center_is_inside():
    result = classify_against([zone(1, *BANGALORE, 100)], *BANGALORE)
    assert result.status == GeofenceStatus.INSIDE
    assert result.zone_id == 1
    assert result.distance_meters == 0


def test_point_outside_every_zone():
    result = classify_against([zone(1, *BANGALORE, 100)], *DELHI)
    assert result.status == GeofenceStatus.OUTSIDE
    assert result.zone_id is None
    assert result.distance_meters is None


def test_point_on_boundary_is_inside():
    # ~111 m north of the center
    result = classify_against([zone(1, *BANGALORE, 112)], BANGALORE[0] + 0.001, BANGALORE[1])
    assert result.is_inside


def test_first_matching_zone_wins():
    zones = [zone(1, *BANGALORE, 500, "outer"), zone(2, *BANGALORE, 50, "inner")]
    result = classify_against(zones, *BANGALORE)
    assert result.zone_name == "outer"


def test_no_zones_is_outside():
    assert classify_against([], *BANGALORE).status == GeofenceStatus.OUTSIDE


@pytest.fixture
def zones(db, test_company, test_branch, other_branch):
    rows = [
        GeofenceZone(company_id=test_company.id, branch_id=None, name="Campus", latitude=BANGALORE[0], longitude=BANGALORE[1], radius_meters=200),
        GeofenceZone(company_id=test_company.id, branch_id=other_branch.id, name="Mumbai Office", latitude=19.0760, longitude=72.8777, radius_meters=200),
        GeofenceZone(company_id=test_company.id, branch_id=test_branch.id, name="Old Site", latitude=DELHI[0], longitude=DELHI[1], radius_meters=200, is_active=False),
    ]
    db.add_all(rows)
    db.commit()
    return rows


def test_classify_uses_company_wide_and_own_branch_zones(db, test_company, test_branch, zones):
    result = classify(db, *BANGALORE, test_company.id, test_branch.id)
    assert result.status == GeofenceStatus.INSIDE
    assert result.zone_name == "Campus"

    # Another branch's zone does not count
    assert classify(db, 19.0760, 72.8777, test_company.id, test_branch.id).status == GeofenceStatus.OUTSIDE
    # Inactive zones do not count
    assert classify(db, *DELHI, test_company.id, test_branch.id).status == GeofenceStatus.OUTSIDE


def test_classify_fails_open_to_unchecked(db, test_company, monkeypatch):
    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(geofence_service, "_zone_scope_query", broken_query)
    result = classify(db, *BANGALORE, test_company.id, None)
    assert result.status == GeofenceStatus.UNCHECKED


# Zone management

def admin_scope(user):
    return TenantScope(subject=user.subject, role=Role.COMPANY_ADMIN, company_id=user.company_id, user_id=user.id)


def manager_scope(user):
    return TenantScope(subject=user.subject, role=Role.BRANCH_MANAGER, company_id=user.company_id, branch_id=user.branch_id, user_id=user.id)


def grant_geofencing(db, manager, **flags):
    db.add(BranchManagerModule(manager_id=manager.id, module_name="geofencing", **flags))
    db.commit()


def test_admin_creates_company_wide_zone(db, company_admin):
    created = geofence_service.create_zone(db, admin_scope(company_admin), "HQ", *BANGALORE, 150)
    assert created.branch_id is None
    assert created.company_id == company_admin.company_id


def test_zone_values_validated(db, company_admin):
    with pytest.raises(ValidationError) as exc:
        geofence_service.create_zone(db, admin_scope(company_admin), "Bad", 91, 200, 0)
    assert exc.value.fields == ["latitude", "longitude", "radius_meters"]


def test_manager_zone_defaults_to_own_branch(db, test_manager, test_branch):
    grant_geofencing(db, test_manager, can_modify=True)
    created = geofence_service.create_zone(db, manager_scope(test_manager), "Gate", *BANGALORE, 50)
    assert created.branch_id == test_branch.id


def test_manager_needs_modify_flag(db, test_manager):
    grant_geofencing(db, test_manager, can_view=True, can_modify=False)
    with pytest.raises(AuthorizationError):
        geofence_service.create_zone(db, manager_scope(test_manager), "Gate", *BANGALORE, 50)


def test_manager_cannot_touch_other_branch_zone(db, test_manager, zones):
    grant_geofencing(db, test_manager, can_modify=True, can_update=True)
    mumbai = zones[1]
    with pytest.raises(AuthorizationError):
        geofence_service.update_zone(db, manager_scope(test_manager), mumbai.id, radius_meters=300)
    with pytest.raises(AuthorizationError):
        geofence_service.delete_zone(db, manager_scope(test_manager), zones[0].id)


def test_update_and_delete_zone(db, company_admin, zones):
    scope = admin_scope(company_admin)
    updated = geofence_service.update_zone(db, scope, zones[0].id, radius_meters=500, name="Campus Wide")
    assert updated.radius_meters == 500
    assert updated.name == "Campus Wide"

    geofence_service.delete_zone(db, scope, zones[0].id)
    with pytest.raises(NotFoundError):
        geofence_service.delete_zone(db, scope, zones[0].id)


def test_list_zones_visibility(db, company_admin, test_employee, zones):
    assert [z.name for z in geofence_service.list_zones(db, admin_scope(company_admin))] == ["Campus", "Mumbai Office"]

    employee_scope = TenantScope(
        subject=test_employee.subject, role=Role.EMPLOYEE,
        company_id=test_employee.company_id, branch_id=test_employee.branch_id,
    )
    assert [z.name for z in geofence_service.list_zones(db, employee_scope)] == ["Campus"]


def test_zone_endpoints(client, db, test_company, company_admin, test_employee):
    admin_token = client.post(
        "/api/v1/auth/login",
        json={"username": "admin@acme.test", "password": PASSWORD}
    ).json()["access_token"]
    headers = {"Authorization": f"Bearer {admin_token}"}

    response = client.post(
        "/api/v1/attendance/geofence/zones",
        json={"name": "HQ", "latitude": BANGALORE[0], "longitude": BANGALORE[1], "radius_meters": 100},
        headers=headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    zone_id = response.json()["id"]

    response = client.put(
        f"/api/v1/attendance/geofence/zones/{zone_id}",
        json={"radius_meters": 250},
        headers=headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["radius_meters"] == 250

    employee_token = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": PASSWORD}
    ).json()["access_token"]
    response = client.post(
        "/api/v1/attendance/geofence/zones",
        json={"name": "Mine", "latitude": 0, "longitude": 0, "radius_meters": 10},
        headers={"Authorization": f"Bearer {employee_token}"},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.delete(f"/api/v1/attendance/geofence/zones/{zone_id}", headers=headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT


def test_disabled_geofencing_blocks_manager(db, test_company, test_manager):
    grant_geofencing(db, test_manager, can_modify=True)
    module = db.query(CompanyModule).filter(
        CompanyModule.company_id == test_company.id,
        CompanyModule.module_name == "geofencing",
    ).first()
    module.is_enabled = False
    db.commit()

    with pytest.raises(AuthorizationError):
        geofence_service.create_zone(db, manager_scope(test_manager), "Gate", *BANGALORE, 50)


# Employee zone assignments

def test_assign_and_list_employee_zones(db, test_company, test_employee, zones):
    mumbai = zones[1]
    assignment = geofence_service.assign_employee_zone(db, test_company.id, test_employee.id, mumbai.id)
    assert assignment.user_id == test_employee.id
    assert assignment.is_primary is True

    again = geofence_service.assign_employee_zone(db, test_company.id, test_employee.id, mumbai.id)
    assert again.id == assignment.id
    assert db.query(EmployeeGeofenceZone).count() == 1

    listed = geofence_service.list_employee_zones(db, test_company.id, test_employee.id)
    assert [z["name"] for z in listed] == ["Mumbai Office", "Campus", "Old Site"]
    assert [z["is_assigned"] for z in listed] == [True, False, False]
    assert listed[0]["is_primary"] is True
    assert listed[2]["is_active"] is False


def test_remove_employee_zone(db, test_company, test_employee, zones):
    campus = zones[0]
    geofence_service.assign_employee_zone(db, test_company.id, test_employee.id, campus.id)

    geofence_service.remove_employee_zone(db, test_company.id, test_employee.id, campus.id)
    assert db.query(EmployeeGeofenceZone).count() == 0

    with pytest.raises(NotFoundError, match="Assignment not found"):
        geofence_service.remove_employee_zone(db, test_company.id, test_employee.id, campus.id)


def test_assignment_stays_inside_the_company(db, test_company, test_employee, zones):
    beta = master_service.create_company(
        db, company_code="beta", name="Beta Ltd", admin_username="admin@beta.test", admin_password=PASSWORD,
    )
    foreign_zone = GeofenceZone(company_id=beta.id, name="Beta Gate", latitude=DELHI[0], longitude=DELHI[1], radius_meters=100)
    db.add(foreign_zone)
    db.commit()

    with pytest.raises(NotFoundError, match="Geofence zone not found"):
        geofence_service.assign_employee_zone(db, test_company.id, test_employee.id, foreign_zone.id)
    with pytest.raises(NotFoundError, match="Employee not found"):
        geofence_service.assign_employee_zone(db, beta.id, test_employee.id, foreign_zone.id)
    with pytest.raises(NotFoundError):
        geofence_service.list_employee_zones(db, beta.id, test_employee.id)


def test_deleting_zone_drops_its_assignments(db, test_company, company_admin, test_employee, zones):
    campus = zones[0]
    geofence_service.assign_employee_zone(db, test_company.id, test_employee.id, campus.id)

    geofence_service.delete_zone(db, admin_scope(company_admin), campus.id)
    assert db.query(EmployeeGeofenceZone).count() == 0


def test_assignment_does_not_change_classification(db, test_company, test_branch, test_employee, zones):
    geofence_service.assign_employee_zone(db, test_company.id, test_employee.id, zones[1].id)
    assert classify(db, 19.0760, 72.8777, test_company.id, test_branch.id).status == GeofenceStatus.OUTSIDE


def test_employee_zone_endpoints(client, db, test_company, company_admin, test_employee, zones):
    admin_token = client.post(
        "/api/v1/auth/login",
        json={"username": "admin@acme.test", "password": PASSWORD}
    ).json()["access_token"]
    headers = {"Authorization": f"Bearer {admin_token}"}
    base = f"/api/v1/company/employees/{test_employee.id}/geofence"

    response = client.post(base, json={"geofence_zone_id": zones[0].id}, headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["geofence_zone_id"] == zones[0].id
    assert response.json()["is_primary"] is True

    response = client.get(base, headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()[0]["id"] == zones[0].id
    assert response.json()[0]["is_assigned"] is True

    response = client.post(base, json={"geofence_zone_id": 999}, headers=headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND

    response = client.delete(f"{base}/{zones[0].id}", headers=headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    response = client.delete(f"{base}/{zones[0].id}", headers=headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Assignment not found"

    employee_token = client.post(
        "/api/v1/auth/login",
        json={"username": "emp@acme.test", "password": PASSWORD}
    ).json()["access_token"]
    response = client.get(base, headers={"Authorization": f"Bearer {employee_token}"})
    assert response.status_code == status.HTTP_403_FORBIDDEN
