"""
Core Type Definitions
=====================

Closed enumerations shared across the gateway. Using enums instead of
magic strings keeps role dispatch and backend selection exhaustive.
"""

from enum import Enum


class TeamRole(str, Enum):
    """
    Role of a user inside the team/group/organization hierarchy.

    MEMBER sees its own team, MANAGER additionally the teams of a group it
    owns, MMM (multi-manager / organization owner) every team of an
    organization it owns.
    """

    MEMBER = "member"
    MANAGER = "manager"
    MMM = "mmm"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | TeamRole | None") -> "TeamRole":
        """Parse a stored role value; unknown or empty values mean MEMBER."""
        if isinstance(value, TeamRole):
            return value
        if not value:
            return cls.MEMBER
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MEMBER


class BackendKind(str, Enum):
    """Upstream inference wire protocol of a deployment."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    ORCHESTRATION = "orchestration"

    def __str__(self) -> str:
        return self.value


class DeploymentStatus(str, Enum):
    """Deployment lifecycle states reported by AI Core."""

    UNKNOWN = "UNKNOWN"
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    DEAD = "DEAD"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    DELETING = "DELETING"
    DELETED = "DELETED"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | DeploymentStatus | None") -> "DeploymentStatus":
        """Parse an upstream status; values this gateway does not know map to UNKNOWN."""
        if isinstance(value, DeploymentStatus):
            return value
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.UNKNOWN


class TargetStatus(str, Enum):
    """Desired end states accepted by a deployment modification."""

    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    DELETED = "DELETED"

    def __str__(self) -> str:
        return self.value
