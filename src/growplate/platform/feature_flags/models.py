"""Feature names, defaults and errors."""

from enum import Enum
from typing import Any


class FeatureName(str, Enum):
    MENU = "menu"
    ORDERS = "orders"
    LOYALTY = "loyalty"


DEFAULT_FEATURES: dict[str, bool] = {
    FeatureName.MENU.value: True,
    FeatureName.ORDERS.value: False,
    FeatureName.LOYALTY.value: False,
}

VALID_FEATURES = frozenset(DEFAULT_FEATURES)


class FeatureFlagError(Exception):
    """Base exception for feature flag operations."""

    pass


class FeatureValidationError(FeatureFlagError):
    """An update named an unknown feature or used a non-boolean value."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class FeatureStoreError(FeatureFlagError):
    """Feature rows could not be read or written."""

    pass
