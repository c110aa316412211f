"""
issuehub Issue Model

Core principles:
1. Issue = unit of tracked work inside a project
2. Reporter is set ONCE at creation, never updated afterwards
3. Subtasks hang off a parent, one level deep only
4. Two priority tiers: internal (P1..P5) and client-facing (freeform)
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, List
from uuid import uuid4
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================

class GlobalRole(str, Enum):
    USER = "user"
    TEAM_MEMBER = "team_member"
    TEAM_LEADER = "team_leader"
    CLIENT = "client"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @property
    def is_manager(self) -> bool:
        """Manager tier: unrestricted mutation and reassignment."""
        return self in MANAGER_TIER

    @classmethod
    def parse(cls, value, default: "GlobalRole" = None) -> Optional["GlobalRole"]:
        """Resolve a persisted role string, falling back to ``default``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return default


MANAGER_TIER = frozenset({
    GlobalRole.TEAM_LEADER,
    GlobalRole.ADMIN,
    GlobalRole.SUPERADMIN,
})


class IssueStatus(str, Enum):
    TO_DO = "to_do"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    DONE = "done"


class InternalPriority(str, Enum):
    P1 = "P1"  # highest
    P2 = "P2"
    P3 = "P3"  # default
    P4 = "P4"
    P5 = "P5"  # lowest


class LegacyPriority(str, Enum):
    HIGHEST = "highest"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    LOWEST = "lowest"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SprintState(str, Enum):
    FUTURE = "future"
    ACTIVE = "active"
    CLOSED = "closed"


# =============================================================================
# FIELD SETS
# =============================================================================

# Everything on an issue that may ever be written after creation.
# reporter_id is deliberately absent: it is set once by create.
ISSUE_MUTABLE_FIELDS = frozenset({
    "project_id",
    "issue_type_id",
    "summary",
    "description",
    "status",
    "internal_priority",
    "client_priority",
    "assignee_id",
    "sprint_id",
    "release_id",
    "parent_issue_id",
    "story_points",
    "labels",
    "components",
    "due_date",
    "estimated_days",
    "actual_days",
    "exposed_to_client",
})

TASK_MUTABLE_FIELDS = frozenset({
    "title",
    "description",
    "status",
    "assigned_to",
    "due_date",
})


# =============================================================================
# CORE MODELS
# =============================================================================

class Issue(BaseModel):
    """
    The core issue entity.

    reporter_id equals the creating identity and is never part of an
    update field mask.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    key: Optional[str] = None
    project_id: str
    issue_type_id: Optional[str] = None

    summary: str
    description: Optional[str] = None
    status: str = IssueStatus.TO_DO.value

    # Dual-tier priority
    internal_priority: str = InternalPriority.P3.value
    client_priority: Optional[str] = None
    # Legacy single-tier column, kept in step with internal_priority
    priority: Optional[str] = None

    # People
    assignee_id: Optional[str] = None
    reporter_id: str

    # Planning
    sprint_id: Optional[str] = None
    release_id: Optional[str] = None
    parent_issue_id: Optional[str] = None  # Leaf if set
    story_points: Optional[float] = None
    labels: List[str] = Field(default_factory=list)
    components: List[str] = Field(default_factory=list)
    due_date: Optional[date] = None
    estimated_days: Optional[float] = None
    actual_days: Optional[float] = None

    exposed_to_client: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_subtask(self) -> bool:
        return self.parent_issue_id is not None


class Task(BaseModel):
    """
    Flat personal/team task, outside any project.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    description: Optional[str] = None
    status: str = TaskStatus.PENDING.value

    assigned_to: Optional[str] = None
    created_by: str

    due_date: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Project(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    key: str
    name: str
    description: Optional[str] = None
    lead_id: Optional[str] = None
    created_by: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ProjectMember(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str
    user_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Sprint(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    project_id: str
    name: str
    goal: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    state: str = SprintState.FUTURE.value
    created_at: datetime = Field(default_factory=datetime.utcnow)


class IssueType(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    description: Optional[str] = None


class Comment(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    issue_id: str
    author_id: str
    body: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# SUPPORTING MODELS
# =============================================================================

class Identity(BaseModel):
    """Verified caller, as returned by the identity resolver."""
    actor_id: str
    email: Optional[str] = None


class Profile(BaseModel):
    id: str
    email: str = "Unknown"


class UserRoleAssignment(BaseModel):
    """
    A user_roles row. role stays a raw string; stored values may not
    be a known GlobalRole.
    """
    user_id: str
    role: Optional[str] = None
    is_active: Optional[bool] = True

    @property
    def active(self) -> bool:
        return self.is_active is not False


# =============================================================================
# HIERARCHY PROJECTIONS (read-only)
# =============================================================================

class ParentRef(BaseModel):
    id: str
    key: Optional[str] = None
    summary: str


class SubtaskSummary(BaseModel):
    id: str
    key: Optional[str] = None
    summary: str
    status: str
    internal_priority: Optional[str] = None
    client_priority: Optional[str] = None


class HierarchyView(BaseModel):
    parent: Optional[ParentRef] = None
    subtasks: List[SubtaskSummary] = Field(default_factory=list)
