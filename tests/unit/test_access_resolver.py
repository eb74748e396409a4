"""Tests for devportal.aicore.access: role based instance resolution"""

import pytest

from devportal.aicore.access import AccessResolver, ManagerStrategy, MemberStrategy, MMMStrategy
from devportal.aicore.credentials import CredentialStore
from devportal.core.exceptions import AuthenticationRequiredError, UserNotFoundError
from devportal.core.types import TeamRole
from devportal.persistence import User


@pytest.fixture
def resolver_for(org_directory, credentials_for, metrics):
    def _make(*teams: str) -> AccessResolver:
        return AccessResolver(org_directory, CredentialStore(credentials_for(*teams), metrics=metrics))
    return _make


ALL_TEAMS = ("team-alpha", "team-beta", "team-gamma", "team-delta")


class TestUserLookup:
    @pytest.mark.asyncio
    async def test_by_email(self, resolver_for):
        user = await resolver_for().user_by_email("TEAM.MEMBER@example.com")
        assert user.name == "team.member"

    @pytest.mark.asyncio
    async def test_unknown_email(self, resolver_for):
        with pytest.raises(UserNotFoundError):
            await resolver_for().user_by_email("ghost@example.com")

    @pytest.mark.asyncio
    async def test_missing_identity(self, resolver_for):
        with pytest.raises(AuthenticationRequiredError):
            await resolver_for().user_by_email("")
        with pytest.raises(AuthenticationRequiredError):
            await resolver_for().user_by_name(None)


class TestResolve:
    @pytest.mark.asyncio
    async def test_member_sees_own_team_owner(self, resolver_for):
        resolver = resolver_for(*ALL_TEAMS)
        user = await resolver.user_by_email("team.member@example.com")
        assert await resolver.resolve(user) == ["team-alpha"]

    @pytest.mark.asyncio
    async def test_member_without_credentials_gets_nothing(self, resolver_for):
        resolver = resolver_for("team-beta")
        user = await resolver.user_by_email("team.member@example.com")
        assert await resolver.resolve(user) == []

    @pytest.mark.asyncio
    async def test_group_manager_sees_group_teams(self, resolver_for):
        resolver = resolver_for(*ALL_TEAMS)
        user = await resolver.user_by_email("group.manager@example.com")
        assert await resolver.resolve(user) == ["team-alpha", "team-beta"]

    @pytest.mark.asyncio
    async def test_manager_not_owning_group_sees_only_team(self, org_directory, resolver_for):
        await org_directory.users.add(
            User(id="u-9", name="other.manager", email="other@example.com", team_id="t-gamma", team_role="manager")
        )
        resolver = resolver_for(*ALL_TEAMS)
        user = await resolver.user_by_email("other@example.com")
        assert await resolver.resolve(user) == ["team-gamma"]

    @pytest.mark.asyncio
    async def test_mmm_sees_whole_organization(self, resolver_for):
        resolver = resolver_for(*ALL_TEAMS)
        user = await resolver.user_by_email("org.mmm@example.com")
        assert await resolver.resolve(user) == ["team-beta", "team-alpha", "team-gamma"]

    @pytest.mark.asyncio
    async def test_partial_credentials_are_filtered(self, resolver_for):
        resolver = resolver_for("team-alpha", "team-gamma")
        user = await resolver.user_by_email("org.mmm@example.com")
        assert await resolver.resolve(user) == ["team-alpha", "team-gamma"]

    @pytest.mark.asyncio
    async def test_metadata_grants_without_team(self, resolver_for):
        resolver = resolver_for(*ALL_TEAMS)
        user = await resolver.user_by_email("metadata.user@example.com")
        assert await resolver.resolve(user) == ["team-alpha", "team-beta"]

    @pytest.mark.asyncio
    async def test_metadata_is_merged_and_deduplicated(self, org_directory, resolver_for):
        await org_directory.users.add(
            User(
                id="u-10",
                name="dup.user",
                email="dup@example.com",
                team_id="t-alpha",
                metadata={"ai_instances": ["team-delta", "team-alpha", "team-delta"]},
            )
        )
        resolver = resolver_for(*ALL_TEAMS)
        user = await resolver.user_by_email("dup@example.com")
        assert await resolver.resolve(user) == ["team-alpha", "team-delta"]

    @pytest.mark.asyncio
    async def test_no_team_no_metadata_is_empty_not_error(self, resolver_for):
        resolver = resolver_for(*ALL_TEAMS)
        user = await resolver.user_by_email("nobody@example.com")
        assert await resolver.resolve(user) == []

    @pytest.mark.asyncio
    async def test_dangling_team_reference(self, org_directory, resolver_for):
        await org_directory.users.add(User(id="u-11", name="lost", email="lost@example.com", team_id="t-missing"))
        resolver = resolver_for(*ALL_TEAMS)
        user = await resolver.user_by_email("lost@example.com")
        assert await resolver.resolve(user) == []


class TestGrants:
    def test_has_any_grant(self):
        assert AccessResolver.has_any_grant(User(id="1", name="n")) is False
        assert AccessResolver.has_any_grant(User(id="1", name="n", team_id="t")) is True
        assert AccessResolver.has_any_grant(User(id="1", name="n", team_role=TeamRole.MANAGER)) is True
        assert AccessResolver.has_any_grant(User(id="1", name="n", metadata='{"ai_instances": ["x"]}')) is True

    @pytest.mark.asyncio
    async def test_primary_instance(self, resolver_for):
        resolver = resolver_for()
        member = await resolver.user_by_email("team.member@example.com")
        nobody = await resolver.user_by_email("nobody@example.com")
        assert await resolver.primary_instance(member) == "team-alpha"
        assert await resolver.primary_instance(nobody) is None

    def test_strategies_cover_every_role(self):
        roles = {s.role for s in (MemberStrategy(), ManagerStrategy(), MMMStrategy())}
        assert roles == set(TeamRole)
