"""
issuehub Issue Service

Create/read/update/delete for issues, with every write routed through:

    PermissionEvaluator -> PriorityNormalizer -> MutationSanitizer
        -> HierarchyResolver (if parent changes) -> RowStore

Update is check-then-act: the snapshot read and the write are two
separate round-trips and concurrent writers are last-writer-wins.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..models.issue import GlobalRole, Identity, Issue, IssueStatus
from .errors import IssueHubError, RoleForbidden
from .hierarchy import HierarchyResolver, ISSUES
from .permissions import Action, PermissionEvaluator, ResourceSnapshot
from .priority import PriorityNormalizer
from .profiles import ProfileDirectory
from .sanitizer import MutationSanitizer
from .store import RowStore

logger = logging.getLogger(__name__)

PROJECTS = "projects"

PEOPLE = {"assignee_id": "assignee", "reporter_id": "reporter"}

# Identity/linkage columns kept on a degraded insert
CREATE_FALLBACK_KEEP = frozenset({
    "id",
    "key",
    "project_id",
    "issue_type_id",
    "reporter_id",
    "assignee_id",
    "sprint_id",
    "parent_issue_id",
    "components",
    "created_at",
    "updated_at",
})

UPDATE_FALLBACK_KEEP = frozenset({"updated_at"})

LIST_FILTERS = ("project_id", "sprint_id", "status", "assignee_id", "parent_issue_id")


class IssueService:

    def __init__(
        self,
        store: RowStore,
        evaluator: PermissionEvaluator,
        hierarchy: Optional[HierarchyResolver] = None,
        sanitizer: Optional[MutationSanitizer] = None,
        profiles: Optional[ProfileDirectory] = None
    ):
        self.store = store
        self.evaluator = evaluator
        self.hierarchy = hierarchy or HierarchyResolver(store)
        self.sanitizer = sanitizer or MutationSanitizer()
        self.profiles = profiles or ProfileDirectory(store)

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_issues(self, filters: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        eq = {k: v for k, v in (filters or {}).items() if k in LIST_FILTERS and v}
        rows = await self.store.select(ISSUES, eq=eq, order_by="created_at", descending=True)
        return await self.profiles.attach(rows, PEOPLE)

    async def get_issue(self, issue_id: str) -> Dict[str, Any]:
        """
        Issue with people and its hierarchy view (parent + subtasks).
        """
        row = await self.store.get(ISSUES, issue_id)
        view = await self.hierarchy.assemble_view(issue_id, row.get("parent_issue_id"))

        [issue] = await self.profiles.attach([row], PEOPLE)
        issue.update(view.model_dump())
        return issue

    async def hierarchy_view(self, issue_id: str) -> Dict[str, Any]:
        view = await self.hierarchy.view_for(issue_id)
        return view.model_dump()

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_issue(
        self,
        actor: Identity,
        role: GlobalRole,
        payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Create an issue reported by ``actor``.

        reporter_id is always the actor, whatever the payload says.
        """
        mask = self.evaluator.enforce(
            role, Action.CREATE_ISSUE, ResourceSnapshot(payload=payload), actor.actor_id
        )

        internal = PriorityNormalizer.normalize_on_create(
            payload.get("internal_priority"),
            payload.get(PriorityNormalizer.LEGACY_FIELD),
        )
        fields = self.sanitizer.sanitize(payload, mask)
        fields["internal_priority"] = internal
        fields["status"] = fields.get("status") or IssueStatus.TO_DO.value
        for list_field in ("labels", "components"):
            if fields.get(list_field) is None:
                fields.pop(list_field, None)

        issue = Issue(reporter_id=actor.actor_id, **fields)
        issue.priority = PriorityNormalizer.to_legacy(internal)
        if issue.is_subtask:
            result = await self.hierarchy.validate(
                issue.parent_issue_id, child_project_id=issue.project_id
            )
            result.raise_for_rejection()

        issue.key = await self._next_key(issue.project_id)
        record = issue.model_dump(mode="json")

        stored = await self.sanitizer.write_with_fallback(
            lambda row: self.store.insert(ISSUES, row),
            record,
            context="issue create",
            keep=CREATE_FALLBACK_KEEP,
        )
        logger.info("Issue %s created by %s", stored.get("key"), actor.actor_id)

        [created] = await self.profiles.attach([stored], PEOPLE)
        return created

    async def update_issue(
        self,
        actor: Identity,
        role: GlobalRole,
        issue_id: str,
        payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Apply the role's field mask to ``payload`` and write the rest.

        Keys outside the mask are dropped, not rejected. If nothing
        survives, the issue is returned unchanged without a write.
        """
        current = await self.store.get(ISSUES, issue_id)

        normalized = PriorityNormalizer.normalize_payload(dict(payload))
        mask = self.evaluator.enforce(
            role,
            Action.UPDATE_ISSUE,
            ResourceSnapshot(record=current, payload=normalized),
            actor.actor_id,
        )
        changes = self.sanitizer.sanitize(normalized, mask)

        dropped = sorted(set(normalized) - set(changes))
        if dropped:
            logger.info(
                "Dropped fields %s from %s update by role %s",
                dropped, issue_id, self.evaluator.resolve_role(role).value
            )

        if not changes:
            [unchanged] = await self.profiles.attach([current], PEOPLE)
            return unchanged

        if changes.get("parent_issue_id"):
            result = await self.hierarchy.validate(
                changes["parent_issue_id"],
                child_id=issue_id,
                child_project_id=changes.get("project_id", current.get("project_id")),
            )
            result.raise_for_rejection()

        if "internal_priority" in changes:
            changes[PriorityNormalizer.LEGACY_FIELD] = PriorityNormalizer.to_legacy(
                changes["internal_priority"]
            )
        changes["updated_at"] = datetime.utcnow().isoformat()

        stored = await self.sanitizer.write_with_fallback(
            lambda row: self.store.update(ISSUES, issue_id, row),
            changes,
            context=f"issue {issue_id} update",
            keep=UPDATE_FALLBACK_KEEP,
        )

        [updated] = await self.profiles.attach([stored], PEOPLE)
        return updated

    async def delete_issue(self, actor: Identity, role: GlobalRole, issue_id: str) -> None:
        """
        Delete an issue. Its subtasks are detached, not deleted.
        """
        current = await self.store.get(ISSUES, issue_id)
        self.evaluator.enforce(
            role, Action.DELETE_ISSUE, ResourceSnapshot(record=current), actor.actor_id
        )

        children = await self.store.select(
            ISSUES, eq={"parent_issue_id": issue_id}, order_by=None
        )
        detached = []
        try:
            for child in children:
                await self.hierarchy.detach(child["id"])
                detached.append(child["id"])
        except IssueHubError:
            logger.error(
                "Delete of issue %s aborted; subtasks already detached: %s",
                issue_id, detached
            )
            raise

        await self.store.delete(ISSUES, issue_id)
        logger.info(
            "Issue %s deleted by %s (%d subtasks detached)",
            issue_id, actor.actor_id, len(children)
        )

    async def set_parent(
        self,
        actor: Identity,
        role: GlobalRole,
        issue_id: str,
        parent_id: Optional[str]
    ) -> Dict[str, Any]:
        """
        Attach ``issue_id`` under ``parent_id``, or detach when None.
        """
        current = await self.store.get(ISSUES, issue_id)
        mask = self.evaluator.enforce(
            role,
            Action.UPDATE_ISSUE,
            ResourceSnapshot(record=current, payload={"parent_issue_id": parent_id}),
            actor.actor_id,
        )
        if "parent_issue_id" not in mask:
            raise RoleForbidden("Your role cannot change issue hierarchy")

        if parent_id is None:
            await self.hierarchy.detach(issue_id)
        else:
            result = await self.hierarchy.attach(parent_id, issue_id)
            result.raise_for_rejection()

        return await self.get_issue(issue_id)

    async def _next_key(self, project_id: str) -> str:
        project = await self.store.get(PROJECTS, project_id)
        existing = await self.store.select(ISSUES, eq={"project_id": project_id}, order_by=None)

        # Highest issued number plus one; deletes leave gaps
        highest = 0
        for row in existing:
            suffix = str(row.get("key") or "").rpartition("-")[2]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{project['key']}-{highest + 1}"
