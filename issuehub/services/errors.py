"""
issuehub Error Taxonomy

Every error carries a stable reason code so the HTTP boundary can pick
a response without matching on message text.
"""

from enum import Enum
from typing import Optional


class ReasonCode(str, Enum):
    ROLE_FORBIDDEN = "ROLE_FORBIDDEN"
    NOT_OWNER = "NOT_OWNER"
    CAPABILITY_MISSING = "CAPABILITY_MISSING"
    INVALID_HIERARCHY = "INVALID_HIERARCHY"
    SCHEMA_DRIFT = "SCHEMA_DRIFT"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_ROLE = "INVALID_ROLE"


class IssueHubError(Exception):
    """Base for all domain errors."""
    code: ReasonCode = ReasonCode.UPSTREAM_UNAVAILABLE

    def __init__(self, message: str, code: Optional[ReasonCode] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class PermissionDenied(IssueHubError):
    """Terminal per-request denial. Never retried."""
    code = ReasonCode.ROLE_FORBIDDEN


class CapabilityMissing(PermissionDenied):
    code = ReasonCode.CAPABILITY_MISSING


class NotOwner(PermissionDenied):
    code = ReasonCode.NOT_OWNER


class RoleForbidden(PermissionDenied):
    code = ReasonCode.ROLE_FORBIDDEN


class InvalidHierarchy(IssueHubError):
    """Cyclic or multi-level nesting attempt."""
    code = ReasonCode.INVALID_HIERARCHY


class SchemaDrift(IssueHubError):
    """Storage rejected a field it does not recognize."""
    code = ReasonCode.SCHEMA_DRIFT

    def __init__(self, message: str, column: Optional[str] = None):
        super().__init__(message)
        self.column = column


class SchemaDriftUnrecoverable(SchemaDrift):
    """Drift persisted after the degraded retry. Needs a migration."""

    REMEDIATION = (
        "Storage schema is behind the application. Apply the pending "
        "issues table migration; retrying will not help."
    )

    def __init__(self, message: str, column: Optional[str] = None):
        super().__init__(f"{message} {self.REMEDIATION}", column=column)


class UpstreamUnavailable(IssueHubError):
    """Storage or identity collaborator failure, surfaced as-is."""
    code = ReasonCode.UPSTREAM_UNAVAILABLE


class NotFound(IssueHubError):
    code = ReasonCode.NOT_FOUND


class Unauthenticated(IssueHubError):
    code = ReasonCode.UNAUTHENTICATED


class InvalidRole(IssueHubError):
    code = ReasonCode.INVALID_ROLE
