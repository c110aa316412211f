import asyncio

import pytest

from issuehub import config
from issuehub.api import Container
from issuehub.models import Identity
from issuehub.services import (
    InMemoryRowStore,
    PermissionEvaluator,
    RoleRegistry,
    StaticTokenIdentityResolver,
)


ACTORS = {
    "tok-user": Identity(actor_id="u-user", email="user@example.com"),
    "tok-member": Identity(actor_id="u-member", email="member@example.com"),
    "tok-other-member": Identity(actor_id="u-other", email="other@example.com"),
    "tok-leader": Identity(actor_id="u-leader", email="leader@example.com"),
    "tok-client": Identity(actor_id="u-client", email="client@example.com"),
    "tok-admin": Identity(actor_id="u-admin", email="admin@example.com"),
}

ROLES = {
    "u-member": "team_member",
    "u-other": "team_member",
    "u-leader": "team_leader",
    "u-client": "client",
    "u-admin": "admin",
    # u-user has no role row and falls back to "user"
}


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def registry():
    return RoleRegistry.from_file(config.ACCESS_CONFIG_PATH)


@pytest.fixture
def evaluator(registry):
    return PermissionEvaluator(registry)


@pytest.fixture
def store():
    return InMemoryRowStore()


@pytest.fixture
def seeded_store(store):
    for identity in ACTORS.values():
        run(store.insert("profiles", {"id": identity.actor_id, "email": identity.email}))
    for user_id, role in ROLES.items():
        run(store.insert("user_roles", {"user_id": user_id, "role": role, "is_active": True}))
    run(store.insert("projects", {"id": "p-1", "key": "HUB", "name": "Hub", "created_by": "u-admin"}))
    run(store.insert("projects", {"id": "p-2", "key": "OPS", "name": "Ops", "created_by": "u-admin"}))
    return store


@pytest.fixture
def container(seeded_store, registry):
    return Container.build(
        store=seeded_store,
        registry=registry,
        identity=StaticTokenIdentityResolver(ACTORS),
    )
