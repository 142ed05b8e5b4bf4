"""Shared primitives: typed results and the HTTP error envelope."""

from growplate.platform.core.exceptions import PlatformHTTPError
from growplate.platform.core.result import Err, Ok, Result

__all__ = ["Err", "Ok", "PlatformHTTPError", "Result"]
