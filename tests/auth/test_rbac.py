"""Tests for the permission matrix."""

import pytest

from growplate.platform.auth.rbac import (
    Action,
    Resource,
    Role,
    has_permission,
    parse_role,
    permissions_for,
)

ALL_PAIRS = [(action, resource) for action in Action for resource in Resource]

STAFF_ALLOWED = {
    (Action.READ, Resource.MENU),
    (Action.READ, Resource.ORDERS),
    (Action.READ, Resource.CUSTOMERS),
    (Action.CREATE, Resource.ORDERS),
    (Action.UPDATE, Resource.ORDERS),
    (Action.UPDATE, Resource.MENU),
}

CUSTOMER_ALLOWED = {
    (Action.READ, Resource.MENU),
    (Action.READ, Resource.OWN_ORDERS),
    (Action.READ, Resource.OWN_PROFILE),
    (Action.CREATE, Resource.ORDERS),
    (Action.UPDATE, Resource.OWN_PROFILE),
}


@pytest.mark.parametrize(("action", "resource"), ALL_PAIRS)
def test_owner_holds_everything(action, resource):
    assert has_permission(Role.OWNER, action, resource) is True


@pytest.mark.parametrize(("action", "resource"), ALL_PAIRS)
def test_staff_matrix(action, resource):
    assert has_permission(Role.STAFF, action, resource) is ((action, resource) in STAFF_ALLOWED)


@pytest.mark.parametrize(("action", "resource"), ALL_PAIRS)
def test_customer_matrix(action, resource):
    assert has_permission(Role.CUSTOMER, action, resource) is (
        (action, resource) in CUSTOMER_ALLOWED
    )


def test_matrix_is_not_a_hierarchy():
    # customers may manage their own profile, staff may not
    assert has_permission(Role.CUSTOMER, Action.UPDATE, Resource.OWN_PROFILE)
    assert not has_permission(Role.STAFF, Action.UPDATE, Resource.OWN_PROFILE)
    assert not permissions_for(Role.CUSTOMER) <= permissions_for(Role.STAFF)


def test_nobody_but_owner_touches_features_or_settings():
    for role in (Role.STAFF, Role.CUSTOMER):
        for action in Action:
            assert not has_permission(role, action, Resource.FEATURES)
            assert not has_permission(role, action, Resource.SETTINGS)


def test_permissions_for():
    assert permissions_for(Role.OWNER) == frozenset(ALL_PAIRS)
    assert permissions_for(Role.STAFF) == STAFF_ALLOWED
    assert permissions_for(Role.CUSTOMER) == CUSTOMER_ALLOWED


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("owner", Role.OWNER),
        (" Staff ", Role.STAFF),
        ("admin", None),
        (None, None),
        ("", None),
        (5, None),
        (["owner"], None),
    ],
)
def test_parse_role(value, expected):
    assert parse_role(value) is expected
