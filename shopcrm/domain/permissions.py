"""Admin roles and the permissions each one carries."""
from enum import Enum


class UserRole(str, Enum):
    OPERATOR = "OPERATOR"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


class Permission(str, Enum):
    VIEW_CUSTOMERS = "VIEW_CUSTOMERS"
    CREATE_CUSTOMERS = "CREATE_CUSTOMERS"
    EDIT_CUSTOMERS = "EDIT_CUSTOMERS"
    ARCHIVE_CUSTOMERS = "ARCHIVE_CUSTOMERS"
    RESTORE_CUSTOMERS = "RESTORE_CUSTOMERS"
    VIEW_COURSES = "VIEW_COURSES"
    CREATE_COURSES = "CREATE_COURSES"
    EDIT_COURSES = "EDIT_COURSES"
    DELETE_COURSES = "DELETE_COURSES"
    VIEW_TAGS = "VIEW_TAGS"
    CREATE_TAGS = "CREATE_TAGS"
    EDIT_TAGS = "EDIT_TAGS"
    DELETE_TAGS = "DELETE_TAGS"
    VIEW_PRODUCTS = "VIEW_PRODUCTS"
    CREATE_PRODUCTS = "CREATE_PRODUCTS"
    EDIT_PRODUCTS = "EDIT_PRODUCTS"
    DELETE_PRODUCTS = "DELETE_PRODUCTS"
    MANAGE_PRODUCTS = "MANAGE_PRODUCTS"
    VIEW_ORDERS = "VIEW_ORDERS"
    EDIT_ORDERS = "EDIT_ORDERS"
    VIEW_EMAIL_TEMPLATES = "VIEW_EMAIL_TEMPLATES"
    CREATE_EMAIL_TEMPLATES = "CREATE_EMAIL_TEMPLATES"
    EDIT_EMAIL_TEMPLATES = "EDIT_EMAIL_TEMPLATES"
    DELETE_EMAIL_TEMPLATES = "DELETE_EMAIL_TEMPLATES"
    SEND_INDIVIDUAL_EMAIL = "SEND_INDIVIDUAL_EMAIL"
    SEND_BULK_EMAIL = "SEND_BULK_EMAIL"
    VIEW_EMAIL_LOGS = "VIEW_EMAIL_LOGS"
    MANAGE_EMAIL_SETTINGS = "MANAGE_EMAIL_SETTINGS"
    MANAGE_PAYMENT_SETTINGS = "MANAGE_PAYMENT_SETTINGS"
    MANAGE_SYSTEM_SETTINGS = "MANAGE_SYSTEM_SETTINGS"
    VIEW_ADMINS = "VIEW_ADMINS"
    CREATE_ADMINS = "CREATE_ADMINS"
    EDIT_ADMINS = "EDIT_ADMINS"
    DELETE_ADMINS = "DELETE_ADMINS"
    # granting the OWNER role
    MANAGE_PERMISSIONS = "MANAGE_PERMISSIONS"
    VIEW_AUDIT_LOGS = "VIEW_AUDIT_LOGS"


_OPERATOR = {
    Permission.VIEW_CUSTOMERS,
    Permission.CREATE_CUSTOMERS,
    Permission.EDIT_CUSTOMERS,
    Permission.VIEW_COURSES,
    Permission.VIEW_TAGS,
    Permission.VIEW_PRODUCTS,
    Permission.VIEW_ORDERS,
    Permission.EDIT_ORDERS,
    Permission.VIEW_EMAIL_TEMPLATES,
    Permission.CREATE_EMAIL_TEMPLATES,
    Permission.EDIT_EMAIL_TEMPLATES,
    Permission.SEND_INDIVIDUAL_EMAIL,
    Permission.SEND_BULK_EMAIL,
    Permission.VIEW_EMAIL_LOGS,
}

_ADMIN = _OPERATOR | {
    Permission.ARCHIVE_CUSTOMERS,
    Permission.RESTORE_CUSTOMERS,
    Permission.CREATE_COURSES,
    Permission.EDIT_COURSES,
    Permission.DELETE_COURSES,
    Permission.CREATE_TAGS,
    Permission.EDIT_TAGS,
    Permission.DELETE_TAGS,
    Permission.CREATE_PRODUCTS,
    Permission.EDIT_PRODUCTS,
    Permission.DELETE_PRODUCTS,
    Permission.MANAGE_PRODUCTS,
    Permission.DELETE_EMAIL_TEMPLATES,
    Permission.VIEW_ADMINS,
    Permission.CREATE_ADMINS,
    Permission.VIEW_AUDIT_LOGS,
}

ROLE_PERMISSIONS: dict[UserRole, frozenset[Permission]] = {
    UserRole.OPERATOR: frozenset(_OPERATOR),
    UserRole.ADMIN: frozenset(_ADMIN),
    UserRole.OWNER: frozenset(Permission),
}


def has_permission(role, permission: Permission) -> bool:
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS[role]
