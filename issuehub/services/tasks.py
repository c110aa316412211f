"""
issuehub Task Service

Flat tasks outside projects. Non-manager roles only see and touch
tasks they created or that are assigned to them.
"""

import logging
from typing import Any, Dict, List, Mapping

from ..models.issue import GlobalRole, Identity, Task, TaskStatus
from .permissions import Action, PermissionEvaluator, ResourceSnapshot
from .sanitizer import MutationSanitizer
from .store import RowStore

logger = logging.getLogger(__name__)

TASKS = "tasks"


class TaskService:

    def __init__(self, store: RowStore, evaluator: PermissionEvaluator):
        self.store = store
        self.evaluator = evaluator

    async def list_tasks(self, actor: Identity, role: GlobalRole) -> List[Dict[str, Any]]:
        owner = self.evaluator.visible_task_owner(role, actor.actor_id)
        if owner is None:
            return await self.store.select(TASKS, order_by="created_at", descending=True)
        return await self.store.select(
            TASKS,
            any_of={"assigned_to": owner, "created_by": owner},
            order_by="created_at",
            descending=True,
        )

    async def get_task(self, actor: Identity, role: GlobalRole, task_id: str) -> Dict[str, Any]:
        task = await self.store.get(TASKS, task_id)
        self.evaluator.enforce(role, Action.VIEW_TASK, ResourceSnapshot(record=task), actor.actor_id)
        return task

    async def create_task(
        self,
        actor: Identity,
        role: GlobalRole,
        payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Create a task; unassigned tasks go to their creator.
        """
        mask = self.evaluator.enforce(
            role, Action.CREATE_TASK, ResourceSnapshot(payload=payload), actor.actor_id
        )
        fields = MutationSanitizer.sanitize(payload, mask)
        fields["assigned_to"] = fields.get("assigned_to") or actor.actor_id
        fields["status"] = fields.get("status") or TaskStatus.PENDING.value

        task = Task(created_by=actor.actor_id, **fields)
        stored = await self.store.insert(TASKS, task.model_dump(mode="json"))
        logger.info("Task %s created by %s for %s", stored["id"], actor.actor_id, stored["assigned_to"])
        return stored

    async def update_task(
        self,
        actor: Identity,
        role: GlobalRole,
        task_id: str,
        payload: Mapping[str, Any]
    ) -> Dict[str, Any]:
        current = await self.store.get(TASKS, task_id)
        mask = self.evaluator.enforce(
            role,
            Action.UPDATE_TASK,
            ResourceSnapshot(record=current, payload=payload),
            actor.actor_id,
        )
        changes = MutationSanitizer.sanitize(payload, mask)
        if not changes:
            return current
        return await self.store.update(TASKS, task_id, changes)

    async def delete_task(self, actor: Identity, role: GlobalRole, task_id: str) -> None:
        current = await self.store.get(TASKS, task_id)
        self.evaluator.enforce(
            role, Action.DELETE_TASK, ResourceSnapshot(record=current), actor.actor_id
        )
        await self.store.delete(TASKS, task_id)
        logger.info("Task %s deleted by %s", task_id, actor.actor_id)
