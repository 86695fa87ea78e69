"""Error taxonomy shared by the store, the gateway and the lifecycle engine."""

from __future__ import annotations


class RecruitError(Exception):
    """Base class for every failure the recruitment core reports."""


class NotFoundError(RecruitError):
    """A keyed lookup (recruitment or quest) found nothing."""


class PlatformError(RecruitError):
    """A chat platform call failed (network, rate limit, permissions)."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class QuestResolutionError(PlatformError):
    """The recruitment message could not be posted at all."""


class PersistenceError(RecruitError):
    """A store call failed."""


class InvalidTransitionError(RecruitError):
    """The recruitment already reached a terminal state."""


class InvalidDateError(RecruitError, ValueError):
    """An event date string could not be understood."""


class PastEventDateError(InvalidDateError):
    """The event date parsed fine but has already passed."""
