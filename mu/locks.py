"""Project locks held as repository labels."""

from __future__ import annotations

from typing import Any

from mu.action import label_url
from mu.errors import AlreadyExistsError, AlreadyLockedError, MultipleLockLabelsError, NotFoundError

_LOCK_LABEL_PREFIX = "mu_lock"


def lock_label(project: str) -> str:
    """Return the name of the label that locks ``project``."""
    return f"{_LOCK_LABEL_PREFIX}_{project}"


def _title(command_type: Any) -> str:
    name = str(getattr(command_type, "value", command_type))
    return " ".join(word[:1].upper() + word[1:].lower() for word in name.split(" "))


def _has_label(pull_request: Any, label: str) -> bool:
    return any(item.name == label for item in (pull_request.labels or ()))


class Locker:
    """Takes and releases project locks for pull requests."""

    def __init__(self, github: Any) -> None:
        self._github = github

    def lock(self, project: str, pr_number: int, command_type: Any, color: str) -> None:
        """Lock ``project`` for the pull request, or raise AlreadyLockedError."""
        label = lock_label(project)
        try:
            holder = self._github.find_pull_request_by_label(label)
        except NotFoundError:
            holder = None
        if holder is not None:
            if holder.number == pr_number:
                return
            self._notify_locked(pr_number, command_type, f"PR: #{holder.number}")
            raise AlreadyLockedError()

        try:
            self._github.create_label(label, f"PR: #{pr_number}", color)
        except AlreadyExistsError:
            existing = self._github.get_label(label)
            self._notify_locked(pr_number, command_type, existing.description)
            raise AlreadyLockedError() from None
        self._github.add_pull_request_labels(pr_number, [label])

    def _notify_locked(self, pr_number: int, command_type: Any, description: str) -> None:
        message = (
            f":lock: **{_title(command_type)} Failed** This project is currently locked by "
            f"{description}\nRemove lock label if not needed"
        )
        self._github.create_issue_comment(pr_number, message)

    def unlock(self, project: str, pull_request: Any) -> None:
        """Release the lock on ``project`` held by ``pull_request``."""
        label = lock_label(project)
        if not _has_label(pull_request, label):
            return
        holders = self._github.list_pull_requests_by_label(label, 2)
        if len(holders or ()) > 1:
            message = (
                f":x: **Unlock failed**\nMultiple {label} labels exist.\n\n{label_url(label)}"
            )
            self._github.create_issue_comment(pull_request.number, message)
            raise MultipleLockLabelsError()
        self._github.delete_label(label)
        self._github.create_issue_comment(
            pull_request.number, f":unlock: Unlocked the `{project}` project"
        )