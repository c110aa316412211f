"""
issuehub Service Container

Wires collaborators (row store, identity resolver, role registry) into
the services once per process.
"""

from dataclasses import dataclass
from typing import Optional

from .. import config
from ..services.comments import CommentService
from ..services.hierarchy import HierarchyResolver
from ..services.identity import IdentityResolver, RoleLookup, StaticTokenIdentityResolver
from ..services.issues import IssueService
from ..services.permissions import PermissionEvaluator
from ..services.profiles import ProfileDirectory
from ..services.projects import ProjectService
from ..services.roles import RoleRegistry
from ..services.sanitizer import MutationSanitizer
from ..services.store import InMemoryRowStore, RowStore
from ..services.tasks import TaskService
from ..services.users import UserService


@dataclass
class Container:
    store: RowStore
    registry: RoleRegistry
    identity: IdentityResolver
    evaluator: PermissionEvaluator
    roles: RoleLookup
    issues: IssueService
    tasks: TaskService
    projects: ProjectService
    comments: CommentService
    users: UserService

    @classmethod
    def build(
        cls,
        store: RowStore,
        registry: RoleRegistry,
        identity: IdentityResolver,
        restrict_issue_delete: bool = False
    ) -> "Container":
        evaluator = PermissionEvaluator(registry, restrict_issue_delete=restrict_issue_delete)
        profiles = ProfileDirectory(store)
        roles = RoleLookup(store, default_role=registry.default_role)

        return cls(
            store=store,
            registry=registry,
            identity=identity,
            evaluator=evaluator,
            roles=roles,
            issues=IssueService(
                store,
                evaluator,
                hierarchy=HierarchyResolver(store),
                sanitizer=MutationSanitizer(),
                profiles=profiles,
            ),
            tasks=TaskService(store, evaluator),
            projects=ProjectService(store, evaluator, profiles=profiles),
            comments=CommentService(store, profiles=profiles),
            users=UserService(store, evaluator, roles, assignable_roles=config.ASSIGNABLE_ROLES),
        )

    @classmethod
    def from_config(
        cls,
        store: Optional[RowStore] = None,
        identity: Optional[IdentityResolver] = None
    ) -> "Container":
        """
        Default wiring: access table from ISSUEHUB_ACCESS_CONFIG.

        Without explicit adapters this runs on the in-memory store with
        no valid tokens, which is only useful for local smoke runs.
        """
        registry = RoleRegistry.from_file(config.ACCESS_CONFIG_PATH, default_role=config.DEFAULT_ROLE)
        return cls.build(
            store=store or InMemoryRowStore(),
            registry=registry,
            identity=identity or StaticTokenIdentityResolver(),
            restrict_issue_delete=config.RESTRICT_ISSUE_DELETE,
        )
