"""
Role-based access control.

Permissions are a closed Role x Action x Resource matrix, not a hierarchy:
staff is not "customer plus more", it simply has its own rows. Owners are the
explicit all-capabilities case.
"""

from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    STAFF = "staff"
    CUSTOMER = "customer"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Resource(str, Enum):
    MENU = "menu"
    ORDERS = "orders"
    CUSTOMERS = "customers"
    OWN_ORDERS = "own_orders"
    OWN_PROFILE = "own_profile"
    FEATURES = "features"
    SETTINGS = "settings"


type Permission = tuple[Action, Resource]

STAFF_PERMISSIONS: frozenset[Permission] = frozenset(
    {
        (Action.READ, Resource.MENU),
        (Action.READ, Resource.ORDERS),
        (Action.READ, Resource.CUSTOMERS),
        (Action.CREATE, Resource.ORDERS),
        (Action.UPDATE, Resource.ORDERS),
        (Action.UPDATE, Resource.MENU),
    }
)

CUSTOMER_PERMISSIONS: frozenset[Permission] = frozenset(
    {
        (Action.READ, Resource.MENU),
        (Action.READ, Resource.OWN_ORDERS),
        (Action.READ, Resource.OWN_PROFILE),
        (Action.CREATE, Resource.ORDERS),
        (Action.UPDATE, Resource.OWN_PROFILE),
    }
)


def has_permission(role: Role, action: Action, resource: Resource) -> bool:
    """Whether ``role`` may perform ``action`` on ``resource``."""
    match role:
        case Role.OWNER:
            return True
        case Role.STAFF:
            return (action, resource) in STAFF_PERMISSIONS
        case Role.CUSTOMER:
            return (action, resource) in CUSTOMER_PERMISSIONS


def permissions_for(role: Role) -> frozenset[Permission]:
    """Every (action, resource) pair granted to ``role``."""
    return frozenset(
        (action, resource)
        for action in Action
        for resource in Resource
        if has_permission(role, action, resource)
    )


def parse_role(value: object) -> Role | None:
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None
