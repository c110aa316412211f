"""
issuehub Permission Evaluator

Answers allow/deny for (role, action, resource snapshot, actor) and,
for partial-write actions, the field mask the caller may write.

Policy is a role -> allowed-fields table plus a short list of
ownership rules. Precedence:

1. Create issue: needs canCreateIssues; assigning to someone else
   needs canAssignIssuesToOthers. Self-assignment is always fine.
2. Create task: assigning to someone else needs manager tier.
3. Update issue: client -> {client_priority, description}, extra keys
   silently dropped. team_member/user -> {status, internal_priority}
   and must be assignee or reporter. Manager tier -> every mutable
   field except reporter_id.
4. Update task: user/client only their own tasks; team_member tasks
   assigned to or created by them, no reassignment. Manager tier
   anything.
5. Global flags (view/manage users, create/view projects): the flag
   alone decides.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

from ..models.issue import (
    GlobalRole,
    MANAGER_TIER,
    ISSUE_MUTABLE_FIELDS,
    TASK_MUTABLE_FIELDS,
)
from .errors import (
    ReasonCode,
    PermissionDenied,
    CapabilityMissing,
    NotOwner,
    RoleForbidden,
)
from .roles import RoleRegistry

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE_ISSUE = "create_issue"
    UPDATE_ISSUE = "update_issue"
    DELETE_ISSUE = "delete_issue"

    CREATE_TASK = "create_task"
    VIEW_TASK = "view_task"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"

    VIEW_ALL_USERS = "view_all_users"
    MANAGE_USERS = "manage_users"
    CREATE_PROJECT = "create_project"
    VIEW_ALL_PROJECTS = "view_all_projects"
    MANAGE_PROJECT_MEMBERS = "manage_project_members"


# =============================================================================
# POLICY TABLES
# =============================================================================

MANAGER_ISSUE_FIELDS = ISSUE_MUTABLE_FIELDS - {"reporter_id"}

ISSUE_UPDATE_MASKS: Dict[GlobalRole, FrozenSet[str]] = {
    GlobalRole.CLIENT: frozenset({"client_priority", "description"}),
    GlobalRole.TEAM_MEMBER: frozenset({"status", "internal_priority"}),
    GlobalRole.USER: frozenset({"status", "internal_priority"}),
    GlobalRole.TEAM_LEADER: MANAGER_ISSUE_FIELDS,
    GlobalRole.ADMIN: MANAGER_ISSUE_FIELDS,
    GlobalRole.SUPERADMIN: MANAGER_ISSUE_FIELDS,
}

# Roles that must be assignee or reporter before any issue update
OWNER_SCOPED_ISSUE_ROLES = frozenset({GlobalRole.TEAM_MEMBER, GlobalRole.USER})

_DENIAL_ERRORS = {
    ReasonCode.CAPABILITY_MISSING: CapabilityMissing,
    ReasonCode.NOT_OWNER: NotOwner,
    ReasonCode.ROLE_FORBIDDEN: RoleForbidden,
}


# =============================================================================
# DECISIONS
# =============================================================================

@dataclass(frozen=True)
class ResourceSnapshot:
    """
    What the evaluator sees of the target.

    record:  persisted state (empty for creates)
    payload: requested write (create body or update changes)
    """
    record: Mapping[str, Any] = field(default_factory=dict)
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Allow:
    field_mask: FrozenSet[str] = frozenset()

    @property
    def allowed(self) -> bool:
        return True


@dataclass(frozen=True)
class Deny:
    reason: ReasonCode
    message: str = "Access denied"

    @property
    def allowed(self) -> bool:
        return False

    def to_error(self) -> PermissionDenied:
        error_cls = _DENIAL_ERRORS.get(self.reason, PermissionDenied)
        return error_cls(self.message)


Decision = Union[Allow, Deny]


def _owns(actor_id: Optional[str], record: Mapping[str, Any], *columns: str) -> bool:
    """True when a known actor matches one of ``columns`` on ``record``."""
    if not actor_id:
        return False
    return any(record.get(column) == actor_id for column in columns)


class PermissionEvaluator:
    """
    Stateless evaluator over an injected RoleRegistry.
    """

    def __init__(self, registry: RoleRegistry, restrict_issue_delete: bool = False):
        self.registry = registry
        self.restrict_issue_delete = restrict_issue_delete

    def resolve_role(self, role) -> GlobalRole:
        return GlobalRole.parse(role, default=self.registry.default_role)

    def evaluate(
        self,
        role,
        action: Union[Action, str],
        snapshot: Optional[ResourceSnapshot] = None,
        actor_id: Optional[str] = None
    ) -> Decision:
        role = self.resolve_role(role)
        action = Action(action)
        snapshot = snapshot or ResourceSnapshot()

        handler = self._handlers()[action]
        decision = handler(role, snapshot, actor_id)

        if not decision.allowed:
            logger.info(
                "Denied %s for actor=%s role=%s: %s",
                action.value, actor_id, role.value, decision.reason.value
            )
        return decision

    def enforce(self, role, action, snapshot=None, actor_id=None) -> FrozenSet[str]:
        """Evaluate and raise the matching PermissionDenied on deny."""
        decision = self.evaluate(role, action, snapshot, actor_id)
        if not decision.allowed:
            raise decision.to_error()
        return decision.field_mask

    def visible_task_owner(self, role, actor_id: str) -> Optional[str]:
        """
        Restrict task listings to one identity, or None for all tasks.
        """
        if self.resolve_role(role).is_manager:
            return None
        return actor_id

    def _handlers(self):
        return {
            Action.CREATE_ISSUE: self._create_issue,
            Action.UPDATE_ISSUE: self._update_issue,
            Action.DELETE_ISSUE: self._delete_issue,
            Action.CREATE_TASK: self._create_task,
            Action.VIEW_TASK: self._view_task,
            Action.UPDATE_TASK: self._update_task,
            Action.DELETE_TASK: self._delete_task,
            Action.VIEW_ALL_USERS: self._global_flag("can_view_all_users"),
            Action.MANAGE_USERS: self._global_flag("can_manage_users"),
            Action.CREATE_PROJECT: self._global_flag("can_create_projects"),
            Action.VIEW_ALL_PROJECTS: self._global_flag("can_view_all_projects"),
            Action.MANAGE_PROJECT_MEMBERS: self._manage_members,
        }

    # =========================================================================
    # Issues
    # =========================================================================

    def _create_issue(self, role, snapshot, actor_id) -> Decision:
        if not self.registry.can_create_issues(role):
            return Deny(
                ReasonCode.CAPABILITY_MISSING,
                "You do not have permission to create issues"
            )

        assignee = snapshot.payload.get("assignee_id")
        if assignee and assignee != actor_id:
            if not self.registry.can_assign_issues_to_others(role):
                return Deny(
                    ReasonCode.CAPABILITY_MISSING,
                    "You do not have permission to assign issues to other users"
                )

        return Allow(ISSUE_MUTABLE_FIELDS)

    def _update_issue(self, role, snapshot, actor_id) -> Decision:
        if role in OWNER_SCOPED_ISSUE_ROLES:
            if not _owns(actor_id, snapshot.record, "assignee_id", "reporter_id"):
                return Deny(
                    ReasonCode.NOT_OWNER,
                    "Only the assignee or reporter can update this issue"
                )

        mask = ISSUE_UPDATE_MASKS.get(role)
        if mask is None:
            return Deny(ReasonCode.ROLE_FORBIDDEN, "Role cannot update issues")
        return Allow(mask)

    def _delete_issue(self, role, snapshot, actor_id) -> Decision:
        # Ungated unless restrict_issue_delete is set, unlike task deletion
        if not self.restrict_issue_delete or role.is_manager:
            return Allow()
        if _owns(actor_id, snapshot.record, "reporter_id"):
            return Allow()
        return Deny(
            ReasonCode.NOT_OWNER,
            "Only the reporter or a team leader/admin can delete this issue"
        )

    # =========================================================================
    # Tasks
    # =========================================================================

    def _create_task(self, role, snapshot, actor_id) -> Decision:
        assignee = snapshot.payload.get("assigned_to")
        if assignee and assignee != actor_id and role not in MANAGER_TIER:
            return Deny(
                ReasonCode.ROLE_FORBIDDEN,
                "Only team leaders/admins can assign tasks to others"
            )
        return Allow(TASK_MUTABLE_FIELDS)

    def _view_task(self, role, snapshot, actor_id) -> Decision:
        if role.is_manager:
            return Allow()
        if _owns(actor_id, snapshot.record, "assigned_to", "created_by"):
            return Allow()
        return Deny(ReasonCode.NOT_OWNER)

    def _update_task(self, role, snapshot, actor_id) -> Decision:
        if role.is_manager:
            return Allow(TASK_MUTABLE_FIELDS)

        record = snapshot.record
        if role == GlobalRole.TEAM_MEMBER:
            if not _owns(actor_id, record, "assigned_to", "created_by"):
                return Deny(ReasonCode.NOT_OWNER)
            new_assignee = snapshot.payload.get("assigned_to")
            if new_assignee and new_assignee != record.get("assigned_to"):
                return Deny(
                    ReasonCode.ROLE_FORBIDDEN,
                    "Team members cannot reassign tasks"
                )
            return Allow(TASK_MUTABLE_FIELDS)

        # user, client and any unlisted role: creator only. Clients get no
        # wider task access than plain users.
        if not _owns(actor_id, record, "created_by"):
            return Deny(ReasonCode.NOT_OWNER, "You can only update your own tasks")
        return Allow(TASK_MUTABLE_FIELDS)

    def _delete_task(self, role, snapshot, actor_id) -> Decision:
        if role.is_manager or _owns(actor_id, snapshot.record, "created_by"):
            return Allow()
        return Deny(ReasonCode.NOT_OWNER)

    # =========================================================================
    # Global / project flags
    # =========================================================================

    def _global_flag(self, flag: str):
        def check(role, snapshot, actor_id) -> Decision:
            if getattr(self.registry, flag)(role):
                return Allow()
            return Deny(
                ReasonCode.CAPABILITY_MISSING,
                f"Role '{role.value}' lacks {flag}"
            )
        return check

    def _manage_members(self, role, snapshot, actor_id) -> Decision:
        if self.registry.can_manage_members(role):
            return Allow()
        return Deny(
            ReasonCode.CAPABILITY_MISSING,
            "You do not have permission to manage project members"
        )
