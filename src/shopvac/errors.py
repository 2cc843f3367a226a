"""
Error taxonomy shared by the controller and the sweep tool.
"""
from typing import Optional

import urllib3
from kubernetes.client import ApiException

# Client-side failures that are treated as "the API server call failed".
API_ERRORS = (ApiException, urllib3.exceptions.HTTPError)


class ShopvacError(Exception):
    """Base class for all shopvac errors."""


class ConfigurationDefect(ShopvacError):
    """A PodCleaner is missing required metadata or has a malformed spec."""


class UpstreamApiError(ShopvacError):
    """A list, apply or delete call against the cluster failed."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status

    @classmethod
    def from_exception(cls, action: str, exc: Exception) -> "UpstreamApiError":
        status = getattr(exc, "status", None)
        reason = getattr(exc, "reason", None) or str(exc)
        if status:
            return cls(f"Failed to {action}: {status} {reason}", status=status)
        return cls(f"Failed to {action}: {reason}")


class StartupTimeout(ShopvacError):
    """The cluster connection could not be established before the deadline."""


class InvalidPattern(ShopvacError):
    """The namespace exclusion pattern is not a valid regular expression."""


class InvalidDuration(ShopvacError, ValueError):
    """A duration string does not match the accepted format."""
