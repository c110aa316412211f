"""
issuehub Access Model

Capability sets per global role. Each role is declared on its own in
the access table; there is no inheritance between roles.
"""

from typing import Dict
from pydantic import BaseModel, ConfigDict, Field


class GlobalCapabilities(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    can_manage_users: bool = Field(False, alias="canManageUsers")
    can_view_all_users: bool = Field(False, alias="canViewAllUsers")
    can_create_projects: bool = Field(False, alias="canCreateProjects")
    can_view_all_projects: bool = Field(False, alias="canViewAllProjects")


class ProjectCapabilities(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    auto_member_on_create: bool = Field(False, alias="autoMemberOnCreate")
    can_manage_members: bool = Field(False, alias="canManageMembers")
    can_create_issues: bool = Field(False, alias="canCreateIssues")
    can_assign_issues_to_others: bool = Field(False, alias="canAssignIssuesToOthers")


class CapabilitySet(BaseModel):
    """Global + project capability namespaces for one role."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    global_: GlobalCapabilities = Field(default_factory=GlobalCapabilities, alias="global")
    project: ProjectCapabilities = Field(default_factory=ProjectCapabilities)


class AccessTable(BaseModel):
    """Top-level shape of access_config.json."""
    model_config = ConfigDict(frozen=True)

    roles: Dict[str, CapabilitySet] = Field(default_factory=dict)
