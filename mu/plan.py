"""Running terraform plan for one project of a pull request."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any

from mu.errors import InitFailedError, PlanFailedError
from mu.messages import (
    INIT_META,
    PLAN_META,
    init_failed_message,
    plan_failed_message,
    plan_succeeded_message,
)
from mu.session import Session, plan_filename

_PLAN = "plan"


def _setting(project: Any, name: str, default: Any = None) -> Any:
    settings = getattr(project, "terraform", None)
    if settings is None:
        return default
    value = getattr(settings, name, default)
    return default if value is None else value


@dataclass
class PlanOutput:
    """Where the plan file was written and the summary line of the plan."""

    path: str
    result: str


class PlanRunner:
    """Runs init and plan for a project and reports the result on the pull request."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def run(self, pr_number: int, sha: str, project: Any, command: Any) -> PlanOutput:
        """Plan ``project``; a failure status is reported whenever this raises."""
        try:
            return self._run(pr_number, sha, project, command)
        except Exception:
            try:
                self._session.status.failure(sha, project.name, _PLAN)
            except Exception as exc:  # the original error matters more
                self._session.logger.error("failed to update commit state: %s", exc)
            raise

    def _run(self, pr_number: int, sha: str, project: Any, command: Any) -> PlanOutput:
        session = self._session
        session.status.pending(sha, project.name, _PLAN)
        session.locker.lock(
            project.name, pr_number, _PLAN, getattr(project, "lock_label_color", "") or ""
        )

        tf = session.terraform_for(project)
        tf.setup()
        tf.compare_version(_setting(project, "version", ""))
        tf.switch_workspace(project.workspace)

        session.action.start_group(
            f"mu init --project={project.name} --workspace={project.workspace}"
        )
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
            session.hide_result_comments(pr_number, (INIT_META, PLAN_META))
            session.post_comment(pr_number, init_failed_message(project, init))
            raise InitFailedError()

        filename = plan_filename(project.name, project.workspace, pr_number)
        var_files = list(_setting(project, "var_files", ())) + list(
            getattr(command, "var_files", None) or ()
        )
        variables = list(_setting(project, "vars", ())) + list(
            getattr(command, "vars", None) or ()
        )
        session.action.start_group(
            f"mu plan --project={project.name} --workspce={project.workspace}"
        )
        try:
            result = tf.plan(
                vars=variables,
                var_files=var_files,
                destroy=bool(getattr(command, "destroy", False)),
                out=filename,
                stream=sys.stdout,
            )
        finally:
            sys.stdout.write("\n")
            session.action.end_group()

        session.output_summary("mu plan", project, result.raw_log)
        session.hide_result_comments(pr_number, (INIT_META, PLAN_META))
        if result.has_error:
            session.post_comment(pr_number, plan_failed_message(project, result))
            raise PlanFailedError()
        session.post_comment(pr_number, plan_succeeded_message(project, result))
        session.status.success(sha, project.name, _PLAN, result)

        return PlanOutput(
            path=os.path.normpath(os.path.join(project.dir, filename)),
            result=result.result,
        )