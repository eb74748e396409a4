"""
Abstract Repository Interfaces
================================

Read-only contracts for the organisational directory the gateway
consults: users, teams, groups and organizations. The relational
implementation lives in the portal's persistence service; the gateway
only depends on these interfaces.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from devportal.core.types import TeamRole

logger = logging.getLogger(__name__)

AI_INSTANCES_KEY = "ai_instances"


@dataclass
class User:
    """Represents a portal user"""
    id: str
    name: str
    email: str | None = None
    team_id: str | None = None
    team_role: TeamRole = TeamRole.MEMBER
    metadata: dict[str, Any] | str | bytes | None = None

    def __post_init__(self) -> None:
        self.team_role = TeamRole.parse(self.team_role)

    @property
    def ai_instances(self) -> list[str]:
        """
        Instance names granted explicitly through ``metadata.ai_instances``.

        Metadata may arrive as a decoded dict or as raw JSON. Malformed
        metadata grants nothing; non-string entries are ignored.
        """
        raw = self.metadata
        if raw is None:
            return []
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw) if raw else {}
            except json.JSONDecodeError:
                logger.warning("Ignoring malformed metadata for user %s", self.name)
                return []
        if not isinstance(raw, dict):
            return []
        entries = raw.get(AI_INSTANCES_KEY) or []
        if not isinstance(entries, list):
            return []
        return [e.strip() for e in entries if isinstance(e, str) and e.strip()]


@dataclass
class Team:
    """Represents a team; its instance name is the owner, falling back to the name"""
    id: str
    name: str
    owner: str | None = None
    group_id: str | None = None

    @property
    def instance_name(self) -> str:
        return self.owner or self.name


@dataclass
class Group:
    """Represents a group of teams"""
    id: str
    name: str
    owner: str | None = None
    org_id: str | None = None


@dataclass
class Organization:
    """Represents an organization of groups"""
    id: str
    name: str
    owner: str | None = None


@dataclass
class Directory:
    """Bundle of the four lookups the access resolver needs"""
    users: "UserRepository"
    teams: "TeamRepository"
    groups: "GroupRepository"
    organizations: "OrganizationRepository"


class UserRepository(ABC):
    """Read-only user lookups"""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> User | None:
        """Get a user by id"""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email address"""
        pass

    @abstractmethod
    async def get_by_name(self, name: str) -> User | None:
        """Get a user by username"""
        pass


class TeamRepository(ABC):
    """Read-only team lookups"""

    @abstractmethod
    async def get_by_id(self, team_id: str) -> Team | None:
        """Get a team by id"""
        pass

    @abstractmethod
    async def get_by_name(self, name: str) -> Team | None:
        """Get a team by name"""
        pass

    @abstractmethod
    async def list_by_group(self, group_id: str) -> list[Team]:
        """List every team of a group"""
        pass


class GroupRepository(ABC):
    """Read-only group lookups"""

    @abstractmethod
    async def get_by_id(self, group_id: str) -> Group | None:
        """Get a group by id"""
        pass

    @abstractmethod
    async def list_by_organization(self, org_id: str) -> list[Group]:
        """List every group of an organization"""
        pass


class OrganizationRepository(ABC):
    """Read-only organization lookups"""

    @abstractmethod
    async def get_by_id(self, org_id: str) -> Organization | None:
        """Get an organization by id"""
        pass
