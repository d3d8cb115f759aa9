"""Commit statuses that report the progress of mu commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from mu.action import run_url

_PENDING_DESCRIPTION = "in progress..."
_FAILURE_DESCRIPTION = "failed."
_APPLY_SUCCEEDED_DESCRIPTION = "Apply succeeded."


class CommitState(str, Enum):
    """State of a commit status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class CommitStatus:
    """A status attached to a commit."""

    sha: str
    status: CommitState
    target_url: str
    description: str
    context: str


def _command_name(command_type: Any) -> str:
    return str(getattr(command_type, "value", command_type))


def status_context(command_type: Any, project_name: str) -> str:
    """Return the status context identifying a command run for a project."""
    return f"mu/{_command_name(command_type)}: {project_name}"


class StatusReporter:
    """Creates pending, success and failure statuses through a GitHub client."""

    def __init__(self, github: Any) -> None:
        self._github = github

    def _report(self, sha: str, state: CommitState, description: str, context: str) -> None:
        self._github.create_commit_status(
            CommitStatus(
                sha=sha,
                status=state,
                target_url=run_url(),
                description=description,
                context=context,
            )
        )

    def pending(self, sha: str, project_name: str, command_type: Any) -> None:
        self._report(
            sha,
            CommitState.PENDING,
            _PENDING_DESCRIPTION,
            status_context(command_type, project_name),
        )

    def success(self, sha: str, project_name: str, command_type: Any, output: Any) -> None:
        name = _command_name(command_type)
        if name == "plan":
            description = output.result
        elif name == "apply":
            description = _APPLY_SUCCEEDED_DESCRIPTION
        else:
            description = ""
        self._report(
            sha,
            CommitState.SUCCESS,
            description,
            status_context(command_type, project_name),
        )

    def failure(self, sha: str, project_name: str, command_type: Any) -> None:
        self._report(
            sha,
            CommitState.FAILURE,
            _FAILURE_DESCRIPTION,
            status_context(command_type, project_name),
        )