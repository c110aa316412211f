"""
issuehub Services

Authorization core plus the thin services that wire it to a row store.
"""

from .errors import (
    ReasonCode,
    IssueHubError,
    PermissionDenied,
    CapabilityMissing,
    NotOwner,
    RoleForbidden,
    InvalidHierarchy,
    SchemaDrift,
    SchemaDriftUnrecoverable,
    UpstreamUnavailable,
    NotFound,
    Unauthenticated,
    InvalidRole,
)
from .roles import RoleRegistry, RoleConfigError
from .permissions import Action, Allow, Deny, Decision, PermissionEvaluator, ResourceSnapshot
from .priority import PriorityNormalizer
from .hierarchy import AttachResult, HierarchyResolver
from .sanitizer import MutationSanitizer
from .store import RowStore, InMemoryRowStore
from .identity import IdentityResolver, StaticTokenIdentityResolver, RoleLookup, authenticate
from .profiles import ProfileDirectory
from .issues import IssueService
from .tasks import TaskService
from .projects import ProjectService
from .comments import CommentService
from .users import UserService

__all__ = [
    # Errors
    "ReasonCode", "IssueHubError", "PermissionDenied", "CapabilityMissing", "NotOwner",
    "RoleForbidden", "InvalidHierarchy", "SchemaDrift", "SchemaDriftUnrecoverable",
    "UpstreamUnavailable", "NotFound", "Unauthenticated", "InvalidRole",

    # Authorization core
    "RoleRegistry", "RoleConfigError",
    "Action", "Allow", "Deny", "Decision", "PermissionEvaluator", "ResourceSnapshot",
    "PriorityNormalizer",
    "AttachResult", "HierarchyResolver",
    "MutationSanitizer",

    # Collaborators
    "RowStore", "InMemoryRowStore",
    "IdentityResolver", "StaticTokenIdentityResolver", "RoleLookup", "authenticate",
    "ProfileDirectory",

    # Services
    "IssueService", "TaskService", "ProjectService", "CommentService", "UserService",
]
