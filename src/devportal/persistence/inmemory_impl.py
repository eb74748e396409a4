"""
In-Memory Directory Implementation
===================================

Dictionary-backed implementations of the directory repositories.
Used by the operator CLI fixtures, local development and tests; the
production directory is the portal database.
"""

import asyncio
import logging

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

logger = logging.getLogger(__name__)


class InMemoryUserRepository(UserRepository):
    """In-memory user store with email and name indexes"""

    def __init__(self, users: list[User] | None = None):
        self._users: dict[str, User] = {}
        self._lock = asyncio.Lock()
        for user in users or []:
            self._users[user.id] = user

    async def add(self, user: User) -> None:
        async with self._lock:
            self._users[user.id] = user

    async def get_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        needle = email.lower()
        for user in self._users.values():
            if user.email and user.email.lower() == needle:
                return user
        return None

    async def get_by_name(self, name: str) -> User | None:
        for user in self._users.values():
            if user.name == name:
                return user
        return None


class InMemoryTeamRepository(TeamRepository):
    """In-memory team store"""

    def __init__(self, teams: list[Team] | None = None):
        self._teams: dict[str, Team] = {}
        self._lock = asyncio.Lock()
        for team in teams or []:
            self._teams[team.id] = team

    async def add(self, team: Team) -> None:
        async with self._lock:
            self._teams[team.id] = team

    async def get_by_id(self, team_id: str) -> Team | None:
        return self._teams.get(team_id)

    async def get_by_name(self, name: str) -> Team | None:
        for team in self._teams.values():
            if team.name == name:
                return team
        return None

    async def list_by_group(self, group_id: str) -> list[Team]:
        return [t for t in self._teams.values() if t.group_id == group_id]


class InMemoryGroupRepository(GroupRepository):
    """In-memory group store"""

    def __init__(self, groups: list[Group] | None = None):
        self._groups: dict[str, Group] = {}
        self._lock = asyncio.Lock()
        for group in groups or []:
            self._groups[group.id] = group

    async def add(self, group: Group) -> None:
        async with self._lock:
            self._groups[group.id] = group

    async def get_by_id(self, group_id: str) -> Group | None:
        return self._groups.get(group_id)

    async def list_by_organization(self, org_id: str) -> list[Group]:
        return [g for g in self._groups.values() if g.org_id == org_id]


class InMemoryOrganizationRepository(OrganizationRepository):
    """In-memory organization store"""

    def __init__(self, organizations: list[Organization] | None = None):
        self._orgs: dict[str, Organization] = {}
        self._lock = asyncio.Lock()
        for org in organizations or []:
            self._orgs[org.id] = org

    async def add(self, org: Organization) -> None:
        async with self._lock:
            self._orgs[org.id] = org

    async def get_by_id(self, org_id: str) -> Organization | None:
        return self._orgs.get(org_id)


def create_inmemory_directory(
    users: list[User] | None = None,
    teams: list[Team] | None = None,
    groups: list[Group] | None = None,
    organizations: list[Organization] | None = None,
) -> Directory:
    """Build a Directory backed entirely by in-memory repositories."""
    directory = Directory(
        users=InMemoryUserRepository(users),
        teams=InMemoryTeamRepository(teams),
        groups=InMemoryGroupRepository(groups),
        organizations=InMemoryOrganizationRepository(organizations),
    )
    logger.debug(
        "In-memory directory created (%d users, %d teams, %d groups, %d organizations)",
        len(users or []), len(teams or []), len(groups or []), len(organizations or []),
    )
    return directory
