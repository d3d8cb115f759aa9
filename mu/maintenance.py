"""Force unlock, resource import and state removal for a single project."""

from __future__ import annotations

import sys
from typing import Any

from mu.errors import ForceUnlockFailedError, ImportFailedError, InitFailedError
from mu.messages import (
    force_unlock_message,
    import_message,
    init_failed_message,
    state_rm_message,
)
from mu.session import Session


def _setting(project: Any, name: str, default: Any = None) -> Any:
    settings = getattr(project, "terraform", None)
    if settings is None:
        return default
    value = getattr(settings, name, default)
    return default if value is None else value


def _command_type(command: Any, default: str) -> Any:
    value = getattr(command, "type", None)
    if callable(value):
        value = value()
    return value or default


def _details(log: str) -> str:
    return "<details><summary>Show Output</summary>\n" + "\n```\n" + log + "\n```\n"


def _prepare_terraform(session: Session, pr_number: int, project: Any, init_title: str) -> Any:
    """Set up terraform for ``project`` and run init, raising on init failure."""
    tf = session.terraform_for(project)
    tf.setup()
    tf.compare_version(_setting(project, "version", ""))
    tf.switch_workspace(project.workspace)

    session.action.start_group(init_title)
    try:
        init = tf.init(
            backend_config=_setting(project, "backend_config"),
            backend_config_path=_setting(project, "backend_config_path", ""),
            stream=sys.stdout,
        )
    finally:
        sys.stdout.write("\n")
        session.action.end_group()
    if init.has_error:
        session.output_init_failed_summary(project, init.raw_log)
        session.post_comment(pr_number, init_failed_message(project, init))
        raise InitFailedError()
    return tf


def force_unlock(session: Session, pr_number: int, project: Any, command: Any) -> None:
    """Release a stuck terraform state lock and report the result."""
    tf = _prepare_terraform(
        session,
        pr_number,
        project,
        f"mu init --project={project.name} --workspace={project.workspace}",
    )

    lock_id = getattr(command, "force_unlock_id", "")
    session.action.start_group(f"mu unlock --force-unlock {lock_id}")
    try:
        result = tf.force_unlock(lock_id, stream=sys.stdout)
    finally:
        session.action.end_group()
        sys.stdout.write("\n")

    if not session.disable_summary_log:
        session.action.add_step_summary(
            "## mu force unlock\n\n"
            f"project: `{project.name}` workspace: `{project.workspace}`\n"
            + _details(result.result)
            + "</details>"
        )
    try:
        session.github.create_issue_comment(pr_number, force_unlock_message(result))
    except Exception as exc:
        raise ForceUnlockFailedError(f"force unlock failed: {exc}") from exc
    if result.has_error:
        raise ForceUnlockFailedError()


def import_resource(session: Session, pr_number: int, project: Any, command: Any) -> None:
    """Import an existing resource into the project's state."""
    session.locker.lock(
        project.name,
        pr_number,
        _command_type(command, "import"),
        getattr(project, "lock_label_color", "") or "",
    )
    tf = _prepare_terraform(
        session,
        pr_number,
        project,
        f"mu init --project={project.name} --workspace={project.workspace}",
    )

    var_files = list(_setting(project, "var_files", ())) + list(
        getattr(command, "var_files", None) or ()
    )
    variables = list(_setting(project, "vars", ())) + list(getattr(command, "vars", None) or ())
    address = getattr(command, "address", "")
    resource_id = getattr(command, "id", "")

    session.action.start_group(
        f"mu import --project={project.name} --workspace={project.workspace}"
    )
    try:
        result = tf.import_resource(
            address=address,
            resource_id=resource_id,
            vars=variables,
            var_files=var_files,
            stream=sys.stdout,
        )
    finally:
        sys.stdout.write("\n")
        session.action.end_group()

    if not session.disable_summary_log:
        session.action.add_step_summary(
            "## mu import\n\n"
            f"project: `{project.name}` workspace:`{project.workspace}`\n"
            + _details(result.result)
            + "</details>\n"
        )
    message = import_message(getattr(command, "project", ""), address, resource_id, result.result)
    session.github.create_issue_comment(pr_number, message)
    if result.has_error:
        raise ImportFailedError()


def state_rm(session: Session, pr_number: int, project: Any, command: Any) -> None:
    """Remove addresses from the project's state and comment the logs."""
    session.locker.lock(
        project.name,
        pr_number,
        _command_type(command, "state"),
        getattr(project, "lock_label_color", "") or "",
    )
    tf = _prepare_terraform(
        session,
        pr_number,
        project,
        f"mu init --project {project.name} --workspace {project.workspace}",
    )

    dry_run = bool(getattr(command, "dry_run", False))
    messages: list[str] = []
    for address in getattr(command, "addresses", None) or ():
        session.action.start_group(
            f"mu state --project {project.name} --workspace {project.workspace} rm {address}"
        )
        try:
            result = tf.state_rm(address=address, dry_run=dry_run, stream=sys.stdout)
        finally:
            sys.stdout.write("\n")
            session.action.end_group()
        if not session.disable_summary_log:
            session.action.add_step_summary(
                "## mu state rm\n\n"
                f"**address: {address}**\n"
                f"workspace: `{project.name}` workspace: `{project.workspace}`"
                + _details(result.result)
                + "</details>\n"
            )
        messages.append(state_rm_message(address, result.result))

    session.github.create_issue_comment(pr_number, "\n".join(messages))