"""
Persistence Layer - Directory Lookups
======================================

Abstract read-only interfaces for users, teams, groups and organizations.
Allows swapping backends (portal database, in-memory) without changing
the access resolution logic.
"""

from .inmemory_impl import (
    InMemoryGroupRepository,
    InMemoryOrganizationRepository,
    InMemoryTeamRepository,
    InMemoryUserRepository,
    create_inmemory_directory,
)
from .repositories import (
    Directory,
    Group,
    GroupRepository,
    Organization,
    OrganizationRepository,
    Team,
    TeamRepository,
    User,
    UserRepository,
)

__all__ = [
    "Directory",
    "Group",
    "GroupRepository",
    "InMemoryGroupRepository",
    "InMemoryOrganizationRepository",
    "InMemoryTeamRepository",
    "InMemoryUserRepository",
    "Organization",
    "OrganizationRepository",
    "Team",
    "TeamRepository",
    "User",
    "UserRepository",
    "create_inmemory_directory",
]
