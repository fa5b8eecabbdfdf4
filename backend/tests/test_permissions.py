# Overview: Pytest coverage for the static role -> permission map.

import pytest

from petros.models import USER_ROLES
from petros.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    get_all_permission_codes,
    get_permissions_for_role,
    has_permission,
)


def test_every_role_is_mapped():
    assert set(DEFAULT_ROLE_PERMISSIONS) == set(USER_ROLES)


@pytest.mark.parametrize("role", sorted(DEFAULT_ROLE_PERMISSIONS))
def test_role_only_grants_defined_codes(role):
    defined = set(get_all_permission_codes())
    granted = get_permissions_for_role(role)
    assert set(granted) <= defined
    assert len(granted) == len(set(granted))


def test_owner_holds_everything():
    assert sorted(get_permissions_for_role("OWNER")) == sorted(get_all_permission_codes())


def test_cashier_cannot_void_or_adjust():
    assert has_permission("CASHIER", "CREATE_SALE")
    assert not has_permission("CASHIER", "VOID_SALES")
    assert not has_permission("CASHIER", "ADJUST_BALANCES")


def test_unknown_role_has_nothing():
    assert get_permissions_for_role("GHOST") == []
    assert not has_permission("GHOST", "VIEW_ITEMS")
