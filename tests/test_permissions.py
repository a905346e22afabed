import pytest

from shopcrm.domain.permissions import Permission, ROLE_PERMISSIONS, UserRole, has_permission


def test_roles_are_nested():
    assert ROLE_PERMISSIONS[UserRole.OPERATOR] < ROLE_PERMISSIONS[UserRole.ADMIN] < ROLE_PERMISSIONS[UserRole.OWNER]
    assert ROLE_PERMISSIONS[UserRole.OWNER] == frozenset(Permission)


@pytest.mark.parametrize("role, permission, allowed", [
    ("OPERATOR", Permission.SEND_BULK_EMAIL, True),
    ("OPERATOR", Permission.VIEW_TAGS, True),
    ("OPERATOR", Permission.CREATE_TAGS, False),
    ("OPERATOR", Permission.VIEW_ADMINS, False),
    ("ADMIN", Permission.DELETE_COURSES, True),
    ("ADMIN", Permission.CREATE_ADMINS, True),
    ("ADMIN", Permission.EDIT_ADMINS, False),
    ("ADMIN", Permission.MANAGE_PERMISSIONS, False),
    ("OWNER", Permission.MANAGE_PERMISSIONS, True),
])
def test_role_table(role, permission, allowed):
    assert has_permission(role, permission) is allowed


def test_unknown_role_has_nothing():
    assert has_permission("GUEST", Permission.VIEW_CUSTOMERS) is False
    assert has_permission(None, Permission.VIEW_CUSTOMERS) is False
