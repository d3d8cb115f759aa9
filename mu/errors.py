"""Exceptions raised while running mu commands."""

from __future__ import annotations


class MuError(Exception):
    """Base class for every error mu raises."""

    default_message = "mu error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InitFailedError(MuError):
    default_message = "init failed"


class PlanFailedError(MuError):
    default_message = "plan failed"


class ApplyFailedError(MuError):
    default_message = "apply failed"


class PlanFileNotFoundError(MuError):
    default_message = "plan file is not found"


class ApprovalsRequiredError(MuError):
    default_message = "approvals are required"


class ForceUnlockFailedError(MuError):
    default_message = "force unlock failed"


class ImportFailedError(MuError):
    default_message = "import failed"


class AlreadyLockedError(MuError):
    default_message = "already locked"


class PanicOccurredError(MuError):
    default_message = "panic occurred"


class MultipleLockLabelsError(MuError):
    default_message = "multiple lock labels"


class InvalidForceUnlockError(MuError):
    default_message = "invalid force unlock"


class NotFoundError(MuError):
    """A requested GitHub resource does not exist."""

    default_message = "not found"


class AlreadyExistsError(MuError):
    """A GitHub resource that was to be created already exists."""

    default_message = "already exists"