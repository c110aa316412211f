"""
issuehub Role Registry

Maps a global role to its capability set.

Loaded once at process start and passed into whatever needs it.
Lookups never fail: an unknown role resolves to the default role's
capabilities. A table that cannot resolve the default role at all is a
configuration error and is raised at load time.
"""

import json
import logging
from pathlib import Path
from typing import Mapping, Union

from pydantic import ValidationError

from ..models.access import AccessTable, CapabilitySet
from ..models.issue import GlobalRole

logger = logging.getLogger(__name__)


class RoleConfigError(ValueError):
    """Access table is malformed or misses the default role."""
    pass


class RoleRegistry:
    """
    Immutable role -> CapabilitySet lookup.

    Roles are independent entries; the registry never derives one
    role's rights from another's.
    """

    def __init__(
        self,
        table: AccessTable,
        default_role: Union[GlobalRole, str] = GlobalRole.USER
    ):
        parsed = GlobalRole.parse(default_role)
        if parsed is None:
            raise RoleConfigError(f"Unknown default role '{default_role}'.")
        default_key = parsed.value
        if default_key not in table.roles:
            raise RoleConfigError(
                f"Access table has no entry for default role '{default_key}'."
            )

        unknown = [name for name in table.roles if GlobalRole.parse(name) is None]
        if unknown:
            raise RoleConfigError(
                f"Access table declares unknown roles: {sorted(unknown)}"
            )

        self._roles = dict(table.roles)
        self._default_key = default_key

        missing = [r.value for r in GlobalRole if r.value not in self._roles]
        if missing:
            logger.warning(
                "Roles without explicit capabilities fall back to '%s': %s",
                default_key, ", ".join(missing)
            )

    @classmethod
    def from_mapping(cls, data: Mapping, default_role=GlobalRole.USER) -> "RoleRegistry":
        try:
            table = AccessTable.model_validate(data)
        except ValidationError as exc:
            raise RoleConfigError(str(exc)) from exc
        return cls(table, default_role=default_role)

    @classmethod
    def from_file(cls, path: Union[str, Path], default_role=GlobalRole.USER) -> "RoleRegistry":
        raw = Path(path).read_text(encoding="utf-8")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RoleConfigError(f"{path}: {exc}") from exc
        registry = cls.from_mapping(data, default_role=default_role)
        logger.info("Loaded %d role definitions from %s", len(registry._roles), path)
        return registry

    @property
    def default_role(self) -> GlobalRole:
        return GlobalRole(self._default_key)

    def capabilities_for(self, role) -> CapabilitySet:
        """Capability set for ``role``; unknown roles get the default's."""
        key = role.value if isinstance(role, GlobalRole) else str(role)
        return self._roles.get(key) or self._roles[self._default_key]

    # =========================================================================
    # Global capabilities
    # =========================================================================

    def can_manage_users(self, role) -> bool:
        return self.capabilities_for(role).global_.can_manage_users

    def can_view_all_users(self, role) -> bool:
        return self.capabilities_for(role).global_.can_view_all_users

    def can_create_projects(self, role) -> bool:
        return self.capabilities_for(role).global_.can_create_projects

    def can_view_all_projects(self, role) -> bool:
        return self.capabilities_for(role).global_.can_view_all_projects

    # =========================================================================
    # Project capabilities
    # =========================================================================

    def auto_member_on_create(self, role) -> bool:
        return self.capabilities_for(role).project.auto_member_on_create

    def can_manage_members(self, role) -> bool:
        return self.capabilities_for(role).project.can_manage_members

    def can_create_issues(self, role) -> bool:
        return self.capabilities_for(role).project.can_create_issues

    def can_assign_issues_to_others(self, role) -> bool:
        return self.capabilities_for(role).project.can_assign_issues_to_others
