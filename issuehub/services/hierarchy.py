"""
issuehub Hierarchy Resolver

One level only: a parent and its direct subtasks.

Rules:
1. An issue cannot be its own parent
2. A parent cannot itself be a subtask (no chains)
3. A child that already has subtasks cannot become a subtask
4. Parent and child live in the same project

The read view uses small projections, never full issue records, so
nested subtasks are not re-authorized one by one.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..models.issue import HierarchyView, ParentRef, SubtaskSummary
from .errors import InvalidHierarchy, NotFound, ReasonCode
from .store import RowStore

logger = logging.getLogger(__name__)

ISSUES = "issues"


@dataclass(frozen=True)
class AttachResult:
    ok: bool
    reason: Optional[ReasonCode] = None
    message: str = ""

    @classmethod
    def accepted(cls) -> "AttachResult":
        return cls(ok=True)

    @classmethod
    def rejected(cls, message: str, reason: ReasonCode = ReasonCode.INVALID_HIERARCHY) -> "AttachResult":
        return cls(ok=False, reason=reason, message=message)

    def raise_for_rejection(self) -> None:
        if self.ok:
            return
        if self.reason == ReasonCode.NOT_FOUND:
            raise NotFound(self.message)
        raise InvalidHierarchy(self.message)


class HierarchyResolver:

    def __init__(self, store: RowStore):
        self.store = store

    @staticmethod
    def check_link(
        parent: Mapping[str, Any],
        child_id: Optional[str],
        child_project_id: Optional[str],
        child_has_subtasks: bool
    ) -> AttachResult:
        """
        Pure rule check for linking ``child_id`` under ``parent``.

        child_id is None for an issue that does not exist yet.
        """
        if child_id is not None and parent.get("id") == child_id:
            return AttachResult.rejected("An issue cannot be its own parent.")

        if parent.get("parent_issue_id"):
            return AttachResult.rejected(
                f"Issue {parent.get('key') or parent.get('id')} is already a subtask. "
                "Subtasks cannot have subtasks."
            )

        if child_has_subtasks:
            return AttachResult.rejected(
                "Issue has its own subtasks and cannot become a subtask."
            )

        if child_project_id and parent.get("project_id") != child_project_id:
            return AttachResult.rejected(
                "Parent and subtask must belong to the same project."
            )

        return AttachResult.accepted()

    async def _get_or_none(self, issue_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.store.get(ISSUES, issue_id)
        except NotFound:
            return None

    async def has_subtasks(self, issue_id: str) -> bool:
        children = await self.store.select(
            ISSUES, eq={"parent_issue_id": issue_id}, order_by=None
        )
        return bool(children)

    async def validate(
        self,
        parent_id: str,
        child_id: Optional[str] = None,
        child_project_id: Optional[str] = None
    ) -> AttachResult:
        """
        Check a proposed link without writing it.
        """
        parent = await self._get_or_none(parent_id)
        if parent is None:
            return AttachResult.rejected(
                f"Parent issue {parent_id} not found.", reason=ReasonCode.NOT_FOUND
            )

        child_has_subtasks = False
        if child_id is not None:
            child_has_subtasks = await self.has_subtasks(child_id)

        result = self.check_link(parent, child_id, child_project_id, child_has_subtasks)
        if not result.ok:
            logger.info(
                "Rejected link parent=%s child=%s: %s", parent_id, child_id, result.message
            )
        return result

    async def attach(self, parent_id: str, child_id: str) -> AttachResult:
        """
        Link ``child_id`` under ``parent_id`` if the rules allow it.
        """
        child = await self._get_or_none(child_id)
        if child is None:
            return AttachResult.rejected(
                f"Issue {child_id} not found.", reason=ReasonCode.NOT_FOUND
            )

        result = await self.validate(parent_id, child_id, child.get("project_id"))
        if result.ok:
            await self.store.update(ISSUES, child_id, {"parent_issue_id": parent_id})
        return result

    async def detach(self, child_id: str) -> None:
        await self.store.update(ISSUES, child_id, {"parent_issue_id": None})

    async def assemble_view(
        self,
        issue_id: str,
        parent_issue_id: Optional[str] = None
    ) -> HierarchyView:
        """
        Parent projection + direct subtask projections for an issue.

        The two reads are independent and run concurrently.
        """
        async def fetch_parent():
            if not parent_issue_id:
                return None
            return await self._get_or_none(parent_issue_id)

        parent_row, subtask_rows = await asyncio.gather(
            fetch_parent(),
            self.store.select(
                ISSUES,
                eq={"parent_issue_id": issue_id},
                order_by="created_at",
                descending=False
            ),
        )

        parent = None
        if parent_row is not None:
            parent = ParentRef(
                id=parent_row["id"],
                key=parent_row.get("key"),
                summary=parent_row.get("summary", ""),
            )

        subtasks = [
            SubtaskSummary(
                id=row["id"],
                key=row.get("key"),
                summary=row.get("summary", ""),
                status=row.get("status", "to_do"),
                internal_priority=row.get("internal_priority"),
                client_priority=row.get("client_priority"),
            )
            for row in subtask_rows
        ]

        return HierarchyView(parent=parent, subtasks=subtasks)

    async def view_for(self, issue_id: str) -> HierarchyView:
        issue = await self.store.get(ISSUES, issue_id)
        return await self.assemble_view(issue_id, issue.get("parent_issue_id"))
