"""
issuehub Project Service

Projects, their members, sprints and the issue-type catalogue.

Visibility:
- canViewAllProjects -> every project
- otherwise          -> projects the actor is a member of
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..models.issue import GlobalRole, Identity, IssueType, Project, ProjectMember, Sprint, SprintState
from .errors import NotFound
from .permissions import Action, PermissionEvaluator
from .profiles import ProfileDirectory
from .store import RowStore

logger = logging.getLogger(__name__)

PROJECTS = "projects"
PROJECT_MEMBERS = "project_members"
SPRINTS = "sprints"
ISSUE_TYPES = "issue_types"


class ProjectService:

    def __init__(
        self,
        store: RowStore,
        evaluator: PermissionEvaluator,
        profiles: Optional[ProfileDirectory] = None
    ):
        self.store = store
        self.evaluator = evaluator
        self.registry = evaluator.registry
        self.profiles = profiles or ProfileDirectory(store)

    # =========================================================================
    # Projects
    # =========================================================================

    async def list_projects(self, actor: Identity, role: GlobalRole) -> List[Dict[str, Any]]:
        if self.evaluator.evaluate(role, Action.VIEW_ALL_PROJECTS, actor_id=actor.actor_id).allowed:
            return await self.store.select(PROJECTS, order_by="created_at", descending=True)

        memberships = await self.store.select(
            PROJECT_MEMBERS, eq={"user_id": actor.actor_id}, order_by=None
        )
        project_ids = [m["project_id"] for m in memberships]
        if not project_ids:
            return []
        return await self.store.select(
            PROJECTS, in_={"id": project_ids}, order_by="created_at", descending=True
        )

    async def get_project(self, project_id: str) -> Dict[str, Any]:
        return await self.store.get(PROJECTS, project_id)

    async def create_project(
        self,
        actor: Identity,
        role: GlobalRole,
        payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Create a project; roles with autoMemberOnCreate join it.
        """
        self.evaluator.enforce(role, Action.CREATE_PROJECT, actor_id=actor.actor_id)

        project = Project(
            key=str(payload["key"]).upper(),
            name=payload["name"],
            description=payload.get("description"),
            lead_id=payload.get("lead_id") or actor.actor_id,
            created_by=actor.actor_id,
        )
        stored = await self.store.insert(PROJECTS, project.model_dump(mode="json"))

        if self.registry.auto_member_on_create(role):
            await self._add_member(stored["id"], actor.actor_id)

        logger.info("Project %s created by %s", stored["key"], actor.actor_id)
        return stored

    # =========================================================================
    # Members
    # =========================================================================

    async def list_members(self, project_id: str) -> List[Dict[str, Any]]:
        await self.store.get(PROJECTS, project_id)
        rows = await self.store.select(
            PROJECT_MEMBERS, eq={"project_id": project_id}, order_by="created_at", descending=False
        )
        return await self.profiles.attach(rows, {"user_id": "user"})

    async def add_member(
        self,
        actor: Identity,
        role: GlobalRole,
        project_id: str,
        user_id: str
    ) -> Dict[str, Any]:
        self.evaluator.enforce(role, Action.MANAGE_PROJECT_MEMBERS, actor_id=actor.actor_id)
        await self.store.get(PROJECTS, project_id)
        return await self._add_member(project_id, user_id)

    async def remove_member(
        self,
        actor: Identity,
        role: GlobalRole,
        project_id: str,
        user_id: str
    ) -> None:
        self.evaluator.enforce(role, Action.MANAGE_PROJECT_MEMBERS, actor_id=actor.actor_id)
        rows = await self.store.select(
            PROJECT_MEMBERS, eq={"project_id": project_id, "user_id": user_id}, order_by=None
        )
        if not rows:
            raise NotFound(f"User {user_id} is not a member of project {project_id}")
        for row in rows:
            await self.store.delete(PROJECT_MEMBERS, row["id"])

    async def _add_member(self, project_id: str, user_id: str) -> Dict[str, Any]:
        existing = await self.store.select(
            PROJECT_MEMBERS, eq={"project_id": project_id, "user_id": user_id}, order_by=None
        )
        if existing:
            return existing[0]
        member = ProjectMember(project_id=project_id, user_id=user_id)
        return await self.store.insert(PROJECT_MEMBERS, member.model_dump(mode="json"))

    # =========================================================================
    # Sprints & issue types
    # =========================================================================

    async def list_sprints(
        self,
        project_id: Optional[str] = None,
        state: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        eq = {}
        if project_id:
            eq["project_id"] = project_id
        if state:
            eq["state"] = state
        return await self.store.select(SPRINTS, eq=eq, order_by="created_at", descending=True)

    async def create_sprint(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        await self.store.get(PROJECTS, payload["project_id"])
        sprint = Sprint(
            project_id=payload["project_id"],
            name=payload["name"],
            goal=payload.get("goal"),
            start_date=payload.get("start_date"),
            end_date=payload.get("end_date"),
            state=payload.get("state") or SprintState.FUTURE.value,
        )
        return await self.store.insert(SPRINTS, sprint.model_dump(mode="json"))

    async def list_issue_types(self) -> List[Dict[str, Any]]:
        rows = await self.store.select(ISSUE_TYPES, order_by="name", descending=False)
        return [IssueType.model_validate(row).model_dump() for row in rows]
