"""
issuehub Models

Issues, tasks, projects and the role capability table.
"""

from .issue import (
    # Enums
    GlobalRole,
    MANAGER_TIER,
    IssueStatus,
    InternalPriority,
    LegacyPriority,
    TaskStatus,
    SprintState,

    # Field sets
    ISSUE_MUTABLE_FIELDS,
    TASK_MUTABLE_FIELDS,

    # Core models
    Issue,
    Task,
    Project,
    ProjectMember,
    Sprint,
    IssueType,
    Comment,

    # Supporting models
    Identity,
    Profile,
    UserRoleAssignment,

    # Hierarchy projections
    ParentRef,
    SubtaskSummary,
    HierarchyView,
)
from .access import (
    GlobalCapabilities,
    ProjectCapabilities,
    CapabilitySet,
    AccessTable,
)

__all__ = [
    "GlobalRole", "MANAGER_TIER", "IssueStatus", "InternalPriority", "LegacyPriority",
    "TaskStatus", "SprintState",
    "ISSUE_MUTABLE_FIELDS", "TASK_MUTABLE_FIELDS",
    "Issue", "Task", "Project", "ProjectMember", "Sprint", "IssueType", "Comment",
    "Identity", "Profile", "UserRoleAssignment",
    "ParentRef", "SubtaskSummary", "HierarchyView",
    "GlobalCapabilities", "ProjectCapabilities", "CapabilitySet", "AccessTable",
]
