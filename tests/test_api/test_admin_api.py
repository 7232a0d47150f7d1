"""Admin endpoints: level gates AND-ed with permissions, and role reload."""

from sqlalchemy import select

from hrm.models.security import Role as RoleRecord


def test_list_users_needs_level_and_permission(api):
    ok = api.client.get("/admin/users", headers=api.headers("harry_hr"))
    too_low = api.client.get("/admin/users", headers=api.headers("mona_mgr_it"))

    assert ok.status_code == 200
    assert {u["username"] for u in ok.json()} >= {"ed_it", "vic_viewer"}
    assert too_low.status_code == 403
    assert too_low.json()["detail"] == "Insufficient role level. Required at least 8"


def test_list_users_unauthenticated(api):
    assert api.client.get("/admin/users").status_code == 401


def test_list_roles_sorted_by_level(api):
    response = api.client.get("/admin/roles", headers=api.headers("alice_admin"))

    assert response.status_code == 200
    levels = [r["level"] for r in response.json()]
    assert levels == sorted(levels, reverse=True)
    assert response.json()[0]["id"] == "super_admin"


def test_reload_requires_level_nine(api):
    response = api.client.post("/admin/roles/reload", headers=api.headers("harry_hr"))
    assert response.status_code == 403
    assert "Required at least 9" in response.json()["detail"]


def test_reload_picks_up_role_changes(api):
    assert api.client.get("/departments", headers=api.headers("ed_it")).status_code == 200

    with api.session_factory() as db:
        record = db.scalars(select(RoleRecord).where(RoleRecord.id == "employee")).one()
        record.permissions = [p for p in record.permissions if p["resource"] != "department"]
        db.commit()

    # Not visible until the snapshot is rebuilt.
    assert api.client.get("/departments", headers=api.headers("ed_it")).status_code == 200

    reloaded = api.client.post("/admin/roles/reload", headers=api.headers("alice_admin"))
    assert reloaded.status_code == 200

    assert api.client.get("/departments", headers=api.headers("ed_it")).status_code == 403


def test_create_department_needs_unscoped_grant(api):
    body = {"name": "Legal", "code": "leg"}

    denied = api.client.post("/departments", json=body, headers=api.headers("mona_mgr_it"))
    created = api.client.post("/departments", json=body, headers=api.headers("alice_admin"))
    duplicate = api.client.post("/departments", json=body, headers=api.headers("alice_admin"))

    assert denied.status_code == 403
    assert created.status_code == 201
    assert created.json()["code"] == "LEG"
    assert duplicate.status_code == 409


def test_level_alone_does_not_pass_admin_users(api):
    with api.session_factory() as db:
        record = db.scalars(select(RoleRecord).where(RoleRecord.id == "hr_admin")).one()
        record.permissions = [p for p in record.permissions if p["resource"] != "users"]
        db.commit()
    assert api.client.post("/admin/roles/reload", headers=api.headers("alice_admin")).status_code == 200

    response = api.client.get("/admin/users", headers=api.headers("harry_hr"))

    assert response.status_code == 403
    assert response.json()["detail"] == "Missing permission read:users"


def test_reload_drops_string_permission_entries(api):
    with api.session_factory() as db:
        record = db.scalars(select(RoleRecord).where(RoleRecord.id == "employee")).one()
        record.permissions = [*record.permissions, "read:department"]
        db.commit()

    reloaded = api.client.post("/admin/roles/reload", headers=api.headers("alice_admin"))

    assert reloaded.status_code == 200
    employee = next(r for r in reloaded.json() if r["id"] == "employee")
    assert len(employee["permissions"]) == 10
    assert api.client.get("/departments", headers=api.headers("ed_it")).status_code == 200
