"""
issuehub Identity

Who is calling and with which global role.

Token verification belongs to the identity provider; the core only
needs something that turns a bearer credential into an Identity.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..models.issue import GlobalRole, Identity, UserRoleAssignment
from .errors import IssueHubError, Unauthenticated
from .store import RowStore

logger = logging.getLogger(__name__)

USER_ROLES = "user_roles"


class IdentityResolver(ABC):

    @abstractmethod
    async def resolve(self, token: str) -> Identity:
        """Return the verified identity or raise Unauthenticated."""


class StaticTokenIdentityResolver(IdentityResolver):
    """
    Fixed token -> identity table, for local runs and tests.
    """

    def __init__(self, tokens: Optional[Dict[str, Identity]] = None):
        self.tokens = dict(tokens or {})

    async def resolve(self, token: str) -> Identity:
        identity = self.tokens.get(token)
        if identity is None:
            raise Unauthenticated("Invalid token")
        return identity


async def authenticate(resolver: IdentityResolver, authorization: Optional[str]) -> Identity:
    """
    Parse an ``Authorization: Bearer ...`` header and verify it.
    """
    if not authorization:
        raise Unauthenticated("No token provided")

    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise Unauthenticated("No token provided")

    try:
        return await resolver.resolve(token)
    except IssueHubError:
        raise
    except Exception as exc:
        logger.warning("Token verification failed: %s", exc)
        raise Unauthenticated("Token verification failed") from exc


class RoleLookup:
    """
    Persisted global role for an actor, defaulting when unassigned.
    """

    def __init__(self, store: RowStore, default_role: GlobalRole = GlobalRole.USER):
        self.store = store
        self.default_role = default_role

    async def role_for(self, actor_id: str) -> GlobalRole:
        rows = await self.store.select(USER_ROLES, eq={"user_id": actor_id}, order_by=None)
        if not rows:
            return self.default_role

        stored = UserRoleAssignment.model_validate(rows[0]).role
        role = GlobalRole.parse(stored)
        if role is None:
            logger.warning(
                "Actor %s has unknown role '%s'; using '%s'",
                actor_id, stored, self.default_role.value
            )
            return self.default_role
        return role

