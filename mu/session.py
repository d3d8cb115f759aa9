"""Shared state and helpers used while running commands for a pull request."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from mu.action import Action
from mu.archive import ZipArchiver
from mu.errors import MuError
from mu.locks import Locker
from mu.messages import split_messages
from mu.status import StatusReporter

ACTION_BOT_NAME = "github-actions"


def plan_filename(name: str, workspace: str, pr_number: int) -> str:
    """Return the name of the plan file for a project run."""
    name = name.replace("/", "::")
    return f"{name}_{workspace}_{pr_number}.tfplan"


def artifact_name(name: str, workspace: str, pr_number: int) -> str:
    """Return the name of the artifact holding a project's plan file."""
    name = name.replace("/", "::")
    return f"mu_{name}_{workspace}_{pr_number}"


def progress_label(pr_number: int) -> str:
    """Return the label marking a pull request with a command in progress."""
    return f"mu_in_progress_{pr_number}"


def _terraform_setting(project: Any, name: str) -> str:
    settings = getattr(project, "terraform", None)
    if settings is None:
        return ""
    return getattr(settings, name, "") or ""


@dataclass
class Session:
    """Clients and settings shared by every command of one run."""

    github: Any
    action: Action = field(default_factory=lambda: Action(sys.stdout))
    archiver: Any = field(default_factory=ZipArchiver)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("mu"))
    terraform: Any = None
    terraform_factory: Callable[..., Any] | None = None
    disable_summary_log: bool = False
    locker: Locker = field(init=False)
    status: StatusReporter = field(init=False)

    def __post_init__(self) -> None:
        self.locker = Locker(self.github)
        self.status = StatusReporter(self.github)

    def terraform_for(self, project: Any) -> Any:
        """Return the terraform runner to use for ``project``."""
        if self.terraform is not None:
            return self.terraform
        if self.terraform_factory is None:
            raise MuError("no terraform runner is configured")
        return self.terraform_factory(
            version=_terraform_setting(project, "version") or None,
            work_dir=project.dir,
            exec_path=_terraform_setting(project, "exec_path"),
        )

    def create_progress_label(self, pr_number: int, sha: str) -> None:
        label = progress_label(pr_number)
        description = f"commit: {sha}" if sha else ""
        self.github.create_label(label, description, "")
        self.github.add_pull_request_labels(pr_number, [label])

    def delete_progress_label(self, pr_number: int) -> None:
        self.github.delete_label(progress_label(pr_number))

    def report_in_progress(self, pr_number: int) -> None:
        """Comment that the run was cancelled because another is in progress."""
        label = progress_label(pr_number)
        message = (
            f"Error: The operation was canceled because #{pr_number} is currently in progress. "
            f'Please remove the "{label}" label to retry.'
        )
        self.github.create_issue_comment(pr_number, message)

    def post_comment(self, pr_number: int, comment: str) -> None:
        """Post ``comment``, split into several comments when it is too long."""
        for message in split_messages(comment):
            self.github.create_issue_comment(pr_number, message)

    def hide_result_comments(self, pr_number: int, metas: Iterable[str]) -> None:
        """Minimize earlier bot comments whose body starts with one of ``metas``."""
        prefixes = tuple(metas)
        for comment in self.github.list_pull_request_comments(pr_number) or ():
            if comment.author.login != ACTION_BOT_NAME:
                continue
            if comment.is_minimized:
                continue
            if not comment.body.startswith(prefixes):
                continue
            self.github.hide_issue_comment(comment.id)

    def output_init_failed_summary(self, project: Any, log: str) -> None:
        if self.disable_summary_log:
            return
        summary = (
            f"## {project.name}\n\n"
            ":x: **Init Failed**\n"
            f"project={project.name} workspace={project.workspace}\n"
            "<details><summary>Show Output</summary>\n"
            "\n```\n"
            f"{log}"
            "\n```\n"
            "</details>\n"
        )
        self.action.add_step_summary(summary)

    def output_summary(self, title: str, project: Any, log: str) -> None:
        """Add a collapsible command log to the step summary."""
        if self.disable_summary_log:
            return
        summary = (
            f"## {title}\n\n"
            f"project: `{project.name}` workspace: `{project.workspace}`\n"
            "<details><summary>Show Output</summary>\n"
            "\n```\n"
            f"{log}"
            "\n```\n"
            "</details>\n"
        )
        self.action.add_step_summary(summary)