"""
Access Resolver - which AI Core instances may a user query
===========================================================

Contributions, in order:

1. the instance of the user's assigned team
2. role-specific grants (a strategy per ``TeamRole``)
3. every entry of ``metadata.ai_instances``

The merged list is deduplicated (first occurrence wins) and filtered to
instances with configured credentials. Unknown instances are dropped
silently.
"""

from abc import ABC, abstractmethod

from devportal.core.exceptions import AuthenticationRequiredError, UserNotFoundError
from devportal.core.structured_logger import get_logger
from devportal.core.types import TeamRole
from devportal.persistence.repositories import Directory, Team, User

from .credentials import CredentialStore

logger = get_logger("AccessResolver")


class RoleStrategy(ABC):
    """Role-specific contribution to a user's accessible instances"""

    role: TeamRole

    @abstractmethod
    async def grants(self, user: User, team: Team | None, directory: Directory) -> list[str]:
        """Return the extra instance names this role grants"""
        pass


class MemberStrategy(RoleStrategy):
    """Members only see their own team, which the resolver adds for everyone"""

    role = TeamRole.MEMBER

    async def grants(self, user: User, team: Team | None, directory: Directory) -> list[str]:
        return []


class ManagerStrategy(RoleStrategy):
    """Managers see every team of the group they own"""

    role = TeamRole.MANAGER

    async def grants(self, user: User, team: Team | None, directory: Directory) -> list[str]:
        if team is None or not team.group_id:
            return []
        group = await directory.groups.get_by_id(team.group_id)
        if group is None or group.owner != user.name:
            return []
        teams = await directory.teams.list_by_group(group.id)
        return [t.instance_name for t in teams]


class MMMStrategy(RoleStrategy):
    """Organization owners see every team of every group in their organization"""

    role = TeamRole.MMM

    async def grants(self, user: User, team: Team | None, directory: Directory) -> list[str]:
        if team is None or not team.group_id:
            return []
        group = await directory.groups.get_by_id(team.group_id)
        if group is None or not group.org_id:
            return []
        org = await directory.organizations.get_by_id(group.org_id)
        if org is None or org.owner != user.name:
            return []

        names: list[str] = []
        for org_group in await directory.groups.list_by_organization(org.id):
            names.extend(t.instance_name for t in await directory.teams.list_by_group(org_group.id))
        return names


DEFAULT_STRATEGIES: dict[TeamRole, RoleStrategy] = {
    s.role: s for s in (MemberStrategy(), ManagerStrategy(), MMMStrategy())
}


class AccessResolver:
    """Computes the instance set a user may query."""

    def __init__(
        self,
        directory: Directory,
        credential_store: CredentialStore,
        strategies: dict[TeamRole, RoleStrategy] | None = None,
    ) -> None:
        self.directory = directory
        self.credentials = credential_store
        self._strategies = strategies or DEFAULT_STRATEGIES

    async def user_by_email(self, email: str | None) -> User:
        if not email:
            raise AuthenticationRequiredError()
        user = await self.directory.users.get_by_email(email)
        if user is None:
            raise UserNotFoundError(email)
        return user

    async def user_by_name(self, username: str | None) -> User:
        if not username:
            raise AuthenticationRequiredError()
        user = await self.directory.users.get_by_name(username)
        if user is None:
            raise UserNotFoundError(username)
        return user

    async def assigned_team(self, user: User) -> Team | None:
        """The user's team, or None when unassigned or the team is gone."""
        if not user.team_id:
            return None
        team = await self.directory.teams.get_by_id(user.team_id)
        if team is None:
            logger.warning("User references a missing team", user=user.name, team_id=user.team_id)
        return team

    async def primary_instance(self, user: User) -> str | None:
        team = await self.assigned_team(user)
        return team.instance_name if team else None

    @staticmethod
    def has_any_grant(user: User) -> bool:
        """
        False for a plain member with no team and no metadata grants.

        Such a user cannot have any instance, so listing deployments for
        them is a caller error rather than an empty result.
        """
        return bool(user.team_id) or user.team_role is not TeamRole.MEMBER or bool(user.ai_instances)

    async def resolve(self, user: User) -> list[str]:
        """Return the ordered, deduplicated, credential-filtered instance names."""
        team = await self.assigned_team(user)

        candidates: list[str] = []
        if team is not None:
            candidates.append(team.instance_name)

        strategy = self._strategies.get(user.team_role)
        if strategy is not None:
            candidates.extend(await strategy.grants(user, team, self.directory))

        candidates.extend(user.ai_instances)

        unique = list(dict.fromkeys(c for c in candidates if c))
        accessible = self.credentials.filter_configured(unique)
        dropped = len(unique) - len(accessible)
        logger.debug(
            "Resolved accessible instances",
            user=user.name,
            role=str(user.team_role),
            instances=accessible,
            dropped=dropped,
        )
        return accessible
