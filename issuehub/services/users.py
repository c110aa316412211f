"""
issuehub User Service

User listing and role administration, gated by global capabilities.
"""

import logging
from typing import Any, Dict, List

from ..models.issue import GlobalRole, Identity, UserRoleAssignment
from .errors import InvalidRole, NotFound
from .identity import RoleLookup, USER_ROLES
from .permissions import Action, PermissionEvaluator
from .profiles import PROFILES
from .store import RowStore

logger = logging.getLogger(__name__)


class UserService:

    def __init__(
        self,
        store: RowStore,
        evaluator: PermissionEvaluator,
        roles: RoleLookup,
        assignable_roles=None
    ):
        self.store = store
        self.evaluator = evaluator
        self.roles = roles
        self.assignable_roles = list(assignable_roles or [r.value for r in GlobalRole])

    async def current_user(self, actor: Identity) -> Dict[str, Any]:
        role = await self.roles.role_for(actor.actor_id)
        return {"id": actor.actor_id, "email": actor.email, "role": role.value}

    async def list_users(self, actor: Identity, role: GlobalRole) -> List[Dict[str, Any]]:
        """
        Every profile with its role; missing role rows read as
        ``user``/active.
        """
        self.evaluator.enforce(role, Action.VIEW_ALL_USERS, actor_id=actor.actor_id)

        profiles = await self.store.select(PROFILES, order_by=None)
        ids = [p["id"] for p in profiles]
        assignments = []
        if ids:
            assignments = await self.store.select(USER_ROLES, in_={"user_id": ids}, order_by=None)
        by_user = {}
        for row in assignments:
            assignment = UserRoleAssignment.model_validate(row)
            by_user[assignment.user_id] = assignment

        users = []
        for profile in profiles:
            assignment = by_user.get(profile["id"]) or UserRoleAssignment(user_id=profile["id"])
            users.append({
                "user_id": profile["id"],
                "email": profile.get("email") or "Unknown",
                "role": assignment.role or self.roles.default_role.value,
                "active": assignment.active,
            })
        return users

    async def set_role(
        self,
        actor: Identity,
        role: GlobalRole,
        user_id: str,
        new_role: str
    ) -> Dict[str, Any]:
        self.evaluator.enforce(role, Action.MANAGE_USERS, actor_id=actor.actor_id)

        if new_role not in self.assignable_roles:
            raise InvalidRole("Invalid role value")

        rows = await self.store.select(USER_ROLES, eq={"user_id": user_id}, order_by=None)
        if rows:
            stored = await self.store.update(USER_ROLES, rows[0]["id"], {"role": new_role})
        else:
            stored = await self.store.insert(
                USER_ROLES, {"user_id": user_id, "role": new_role, "is_active": True}
            )

        logger.info("Role of %s set to %s by %s", user_id, new_role, actor.actor_id)
        return {"user_id": stored["user_id"], "role": stored["role"]}

    async def set_active(
        self,
        actor: Identity,
        role: GlobalRole,
        user_id: str,
        active
    ) -> Dict[str, Any]:
        self.evaluator.enforce(role, Action.MANAGE_USERS, actor_id=actor.actor_id)

        # Anything but an explicit false activates
        value = active is not False

        rows = await self.store.select(USER_ROLES, eq={"user_id": user_id}, order_by=None)
        if not rows:
            raise NotFound(f"No role assignment for user {user_id}")

        stored = await self.store.update(USER_ROLES, rows[0]["id"], {"is_active": value})
        logger.info("User %s active=%s set by %s", user_id, value, actor.actor_id)
        return {"user_id": stored["user_id"], "is_active": stored["is_active"]}
