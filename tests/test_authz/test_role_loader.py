"""Tests for role definitions: YAML loading, record parsing and wildcard expansion."""

from pathlib import Path

import pytest

from hrm.authz import (
    HR_PERMISSIONS,
    RoleConfigError,
    ScopedPermission,
    Scope,
    expand_wildcards,
    load_role_definitions,
    role_from_record,
)

ROLES_PATH = Path(__file__).resolve().parents[2] / "config" / "roles.yaml"


def _write(tmp_path, text: str) -> Path:
    path = tmp_path / "roles.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_builtin_roles_load():
    roles = {r.id: r for r in load_role_definitions(ROLES_PATH, HR_PERMISSIONS)}

    assert set(roles) >= {"super_admin", "admin", "hr_admin", "dept_manager", "manager", "employee", "viewer"}
    assert roles["hr_admin"].name == "HR Administrator"
    assert roles["hr_admin"].level == 8
    assert ScopedPermission("approve", "leave", Scope.DEPARTMENT) in roles["dept_manager"].permissions
    assert roles["viewer"].permissions[0] == ScopedPermission("read", "department", None)


def test_entry_forms(tmp_path):
    path = _write(
        tmp_path,
        """
roles:
  clerk:
    name: Clerk
    level: 2
    permissions:
      - EMPLOYEE_READ
      - {permission: LEAVE_CREATE, scope: own}
      - {action: read, resource: attendance, scope: department}
      - {action: "*", resource: reports}
""",
    )

    (clerk,) = load_role_definitions(path, HR_PERMISSIONS)

    assert clerk.permissions == (
        ScopedPermission("read", "employee", None),
        ScopedPermission("create", "leave", Scope.OWN),
        ScopedPermission("read", "attendance", Scope.DEPARTMENT),
        ScopedPermission("*", "reports", None),
    )


@pytest.mark.parametrize(
    "body",
    [
        "    permissions: [EMPLOYEE_TELEPORT]\n",
        "    permissions: [{permission: EMPLOYEE_READ, scope: galaxy}]\n",
        "    permissions: [{action: fly, resource: employee}]\n",
        "    permissions: [{action: read}]\n",
        "    permissions: [42]\n",
        "    permissions: EMPLOYEE_READ\n",
    ],
)
def test_invalid_entries_rejected(tmp_path, body):
    path = _write(tmp_path, "roles:\n  bad:\n    level: 2\n" + body)
    with pytest.raises(RoleConfigError):
        load_role_definitions(path, HR_PERMISSIONS)


@pytest.mark.parametrize("level", ["0", "-1", "high", "true", "null"])
def test_invalid_level_rejected(tmp_path, level):
    path = _write(tmp_path, f"roles:\n  bad:\n    level: {level}\n    permissions: []\n")
    with pytest.raises(RoleConfigError):
        load_role_definitions(path, HR_PERMISSIONS)


def test_name_defaults_to_id(tmp_path):
    path = _write(tmp_path, "roles:\n  auditor:\n    level: 4\n")
    (role,) = load_role_definitions(path, HR_PERMISSIONS)
    assert role.name == "auditor"
    assert role.permissions == ()


def test_expand_wildcards_preserves_order_and_first_grant():
    perms = (
        ScopedPermission("read", "leave", Scope.OWN),
        ScopedPermission("*", "leave", Scope.ALL),
    )

    expanded = expand_wildcards(perms, HR_PERMISSIONS)

    assert expanded[0] == ScopedPermission("read", "leave", Scope.OWN)
    assert ScopedPermission("read", "leave", Scope.ALL) not in expanded
    assert ScopedPermission("approve", "leave", Scope.ALL) in expanded
    assert all(p.resource == "leave" for p in expanded)
    assert len(expanded) == 7


def test_expand_full_wildcard_covers_catalog():
    expanded = expand_wildcards((ScopedPermission("*", "*", Scope.ALL),), HR_PERMISSIONS)
    assert {p.permission for p in expanded} == set(HR_PERMISSIONS.permissions())


def test_role_from_record_drops_unknown_scope():
    role = role_from_record(
        "r",
        "R",
        3,
        [
            {"action": "read", "resource": "employee", "scope": "everywhere"},
            {"action": "read", "resource": "leave", "scope": "OWN"},
            {"action": "", "resource": "leave"},
        ],
    )

    assert role.permissions == (ScopedPermission("read", "leave", Scope.OWN),)


@pytest.mark.parametrize("level", [0, -3, "5", None, True])
def test_role_from_record_invalid_level(level):
    assert role_from_record("r", "R", level, []) is None


def test_role_from_record_skips_non_mapping_entries():
    role = role_from_record(
        "r",
        "R",
        3,
        ["read:employee", None, 7, {"action": "read", "resource": "leave", "scope": "own"}],
    )

    assert role.permissions == (ScopedPermission("read", "leave", Scope.OWN),)
