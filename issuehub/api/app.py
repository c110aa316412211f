"""
issuehub API

FastAPI application with:
- Issue CRUD behind field-level permissions
- Parent/subtask hierarchy
- Projects, members, sprints, issue types, comments
- Personal/team tasks
- User listing and role administration
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .. import __version__, config
from ..models.issue import GlobalRole, Identity
from ..services.errors import IssueHubError, ReasonCode
from ..services.identity import authenticate
from .container import Container

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ReasonCode.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ReasonCode.ROLE_FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ReasonCode.NOT_OWNER: status.HTTP_403_FORBIDDEN,
    ReasonCode.CAPABILITY_MISSING: status.HTTP_403_FORBIDDEN,
    ReasonCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.INVALID_HIERARCHY: status.HTTP_409_CONFLICT,
    ReasonCode.INVALID_ROLE: status.HTTP_400_BAD_REQUEST,
    ReasonCode.SCHEMA_DRIFT: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ReasonCode.UPSTREAM_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CreateProjectRequest(BaseModel):
    key: str
    name: str
    description: Optional[str] = None
    lead_id: Optional[str] = None


class AddMemberRequest(BaseModel):
    user_id: str


class CreateIssueRequest(BaseModel):
    project_id: str
    issue_type_id: Optional[str] = None
    summary: str
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None  # legacy single-tier
    internal_priority: Optional[str] = None
    client_priority: Optional[str] = None
    assignee_id: Optional[str] = None
    sprint_id: Optional[str] = None
    release_id: Optional[str] = None
    parent_issue_id: Optional[str] = None
    story_points: Optional[float] = None
    labels: Optional[List[str]] = None
    components: Optional[List[str]] = None
    due_date: Optional[date] = None
    estimated_days: Optional[float] = None
    actual_days: Optional[float] = None
    exposed_to_client: Optional[bool] = None


class SetParentRequest(BaseModel):
    parent_issue_id: str


class CreateSprintRequest(BaseModel):
    project_id: str
    name: str
    goal: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    state: Optional[str] = None


class CreateCommentRequest(BaseModel):
    body: str


class CreateTaskRequest(BaseModel):
    title: str
    description: Optional[str] = None
    status: Optional[str] = None
    assigned_to: Optional[str] = None
    due_date: Optional[date] = None


class SetRoleRequest(BaseModel):
    role: str


class SetActiveRequest(BaseModel):
    active: Optional[Any] = None


# =============================================================================
# DEPENDENCIES
# =============================================================================

@dataclass
class Caller:
    identity: Identity
    role: GlobalRole


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_caller(
    authorization: Optional[str] = Header(None),
    container: Container = Depends(get_container)
) -> Caller:
    identity = await authenticate(container.identity, authorization)
    role = await container.roles.role_for(identity.actor_id)
    return Caller(identity=identity, role=role)


# =============================================================================
# JIRA-STYLE ROUTES
# =============================================================================

jira = APIRouter()


@jira.get("/projects")
async def list_projects(caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.projects.list_projects(caller.identity, caller.role)


@jira.post("/projects", status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.projects.create_project(caller.identity, caller.role, request.model_dump())


@jira.get("/projects/{project_id}")
async def get_project(project_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.projects.get_project(project_id)


@jira.get("/projects/{project_id}/members")
async def list_members(project_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.projects.list_members(project_id)


@jira.post("/projects/{project_id}/members", status_code=status.HTTP_201_CREATED)
async def add_member(
    project_id: str,
    request: AddMemberRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.projects.add_member(caller.identity, caller.role, project_id, request.user_id)


@jira.delete("/projects/{project_id}/members/{user_id}")
async def remove_member(
    project_id: str,
    user_id: str,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    await c.projects.remove_member(caller.identity, caller.role, project_id, user_id)
    return {"message": "Member removed successfully"}


@jira.get("/issue-types")
async def list_issue_types(caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.projects.list_issue_types()


@jira.get("/issues")
async def list_issues(
    project_id: Optional[str] = None,
    sprint_id: Optional[str] = None,
    status: Optional[str] = None,
    assignee_id: Optional[str] = None,
    parent_issue_id: Optional[str] = None,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.issues.list_issues({
        "project_id": project_id,
        "sprint_id": sprint_id,
        "status": status,
        "assignee_id": assignee_id,
        "parent_issue_id": parent_issue_id,
    })


@jira.get("/issues/{issue_id}")
async def get_issue(issue_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.issues.get_issue(issue_id)


@jira.post("/issues", status_code=status.HTTP_201_CREATED)
async def create_issue(
    request: CreateIssueRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    payload = request.model_dump(mode="json", exclude_none=True)
    return await c.issues.create_issue(caller.identity, caller.role, payload)


@jira.put("/issues/{issue_id}")
async def update_issue(
    issue_id: str,
    payload: Dict[str, Any] = Body(...),
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    """
    Partial update. Fields outside the caller's mask are ignored.
    """
    return await c.issues.update_issue(caller.identity, caller.role, issue_id, payload)


@jira.delete("/issues/{issue_id}")
async def delete_issue(issue_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    await c.issues.delete_issue(caller.identity, caller.role, issue_id)
    return {"message": "Issue deleted successfully"}


@jira.get("/issues/{issue_id}/hierarchy")
async def get_hierarchy(issue_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.issues.hierarchy_view(issue_id)


@jira.put("/issues/{issue_id}/parent")
async def set_parent(
    issue_id: str,
    request: SetParentRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.issues.set_parent(caller.identity, caller.role, issue_id, request.parent_issue_id)


@jira.delete("/issues/{issue_id}/parent")
async def clear_parent(issue_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.issues.set_parent(caller.identity, caller.role, issue_id, None)


@jira.get("/sprints")
async def list_sprints(
    project_id: Optional[str] = None,
    state: Optional[str] = None,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.projects.list_sprints(project_id=project_id, state=state)


@jira.post("/sprints", status_code=status.HTTP_201_CREATED)
async def create_sprint(
    request: CreateSprintRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.projects.create_sprint(request.model_dump(mode="json"))


@jira.get("/issues/{issue_id}/comments")
async def list_comments(issue_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.comments.list_comments(issue_id)


@jira.post("/issues/{issue_id}/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    issue_id: str,
    request: CreateCommentRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.comments.add_comment(caller.identity, issue_id, request.body)


# =============================================================================
# TASKS, USERS, ADMIN
# =============================================================================

core = APIRouter()


@core.get("/health")
async def health_check():
    return {"status": "ok", "service": "issuehub", "version": __version__}


@core.get("/tasks")
async def list_tasks(caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.tasks.list_tasks(caller.identity, caller.role)


@core.get("/tasks/{task_id}")
async def get_task(task_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.tasks.get_task(caller.identity, caller.role, task_id)


@core.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(
    request: CreateTaskRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    payload = request.model_dump(mode="json", exclude_none=True)
    return await c.tasks.create_task(caller.identity, caller.role, payload)


@core.put("/tasks/{task_id}")
async def update_task(
    task_id: str,
    payload: Dict[str, Any] = Body(...),
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.tasks.update_task(caller.identity, caller.role, task_id, payload)


@core.delete("/tasks/{task_id}")
async def delete_task(task_id: str, caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    await c.tasks.delete_task(caller.identity, caller.role, task_id)
    return {"message": "Task deleted successfully"}


@core.get("/user")
async def get_user(caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.users.current_user(caller.identity)


@core.get("/users")
async def list_users(caller: Caller = Depends(get_caller), c: Container = Depends(get_container)):
    return await c.users.list_users(caller.identity, caller.role)


@core.put("/admin/users/{user_id}/role")
async def set_user_role(
    user_id: str,
    request: SetRoleRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.users.set_role(caller.identity, caller.role, user_id, request.role)


@core.put("/admin/users/{user_id}/active")
async def set_user_active(
    user_id: str,
    request: SetActiveRequest,
    caller: Caller = Depends(get_caller),
    c: Container = Depends(get_container)
):
    return await c.users.set_active(caller.identity, caller.role, user_id, request.active)


# =============================================================================
# APP SETUP
# =============================================================================

def create_app(container: Optional[Container] = None) -> FastAPI:
    app = FastAPI(
        title="issuehub",
        description="Issue tracker with role-based field-level permissions",
        version=__version__
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.container = container or Container.from_config()

    @app.exception_handler(IssueHubError)
    async def issuehub_error_handler(request: Request, exc: IssueHubError):
        code = STATUS_BY_CODE.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=code,
            content={"error": exc.message, "code": exc.code.value},
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Invalid payload", "detail": exc.errors(include_url=False, include_context=False)},
        )

    app.include_router(core, prefix="/api")
    app.include_router(jira, prefix="/api/jira")
    return app


# =============================================================================
# RUN
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    config.configure_logging()
    uvicorn.run(create_app(), host=config.HOST, port=config.PORT)
