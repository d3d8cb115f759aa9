"""Running terraform apply of a stored plan for one project of a pull request."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Any

from mu.errors import (
    ApplyFailedError,
    ApprovalsRequiredError,
    InitFailedError,
    PlanFileNotFoundError,
)
from mu.messages import (
    APPLY_META,
    INIT_META,
    PLAN_META,
    apply_failed_message,
    apply_succeeded_message,
    init_failed_message,
)
from mu.session import Session, plan_filename

_APPLY = "apply"


def _setting(project: Any, name: str, default: Any = None) -> Any:
    settings = getattr(project, "terraform", None)
    if settings is None:
        return default
    value = getattr(settings, name, default)
    return default if value is None else value


def _require_approvals(project: Any) -> int:
    settings = getattr(project, "apply", None)
    if settings is None:
        return 0
    return getattr(settings, "require_approvals", 0) or 0


@dataclass
class ApplyOutput:
    """The summary line of a successful apply."""

    result: str


class ApplyRunner:
    """Applies a downloaded plan file and reports the result on the pull request."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def run(
        self, pr_number: int, sha: str, project: Any, artifact: Any, reviews: Any
    ) -> ApplyOutput:
        """Apply ``project``; a failure status is reported whenever this raises."""
        try:
            return self._run(pr_number, sha, project, artifact, reviews)
        except Exception:
            try:
                self._session.status.failure(sha, project.name, _APPLY)
            except Exception as exc:  # the original error matters more
                self._session.logger.error("failed to update status: %s", exc)
            raise

    def _run(
        self, pr_number: int, sha: str, project: Any, artifact: Any, reviews: Any
    ) -> ApplyOutput:
        session = self._session
        required = _require_approvals(project)
        if required > 0:
            approvals = reviews.approves()
            if required > approvals:
                session.github.create_issue_comment(
                    pr_number,
                    f":x: At least {required} approvals are required before running `mu apply`.",
                )
                raise ApprovalsRequiredError(
                    f"not enough approve: require_approvals: {required}, count: {approvals}"
                )

        session.locker.lock(
            project.name, pr_number, _APPLY, getattr(project, "lock_label_color", "") or ""
        )
        session.status.pending(sha, project.name, _APPLY)

        if artifact is None:
            session.github.create_issue_comment(
                pr_number,
                f"{PLAN_META}\nThe plan file for the `{project.name}` project is not in the "
                "Actions Artifacts. Please run `mu plan` again.",
            )
            raise PlanFileNotFoundError(f"plan file is not found: {project.name}")

        filename = plan_filename(project.name, project.workspace, pr_number)
        archive_path = self._download_plan_file(project.dir, filename, artifact.id)
        session.archiver.decompress(project.dir, archive_path)

        tf = session.terraform_for(project)
        tf.setup()
        tf.compare_version(_setting(project, "version", ""))
        tf.switch_workspace(project.workspace)

        session.action.start_group(
            f"mu init --project {project.name} --workspace {project.workspace}"
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
            session.hide_result_comments(pr_number, (INIT_META, APPLY_META))
            session.post_comment(pr_number, init_failed_message(project, init))
            raise InitFailedError()

        session.action.start_group(
            f"mu apply --project {project.name} --workspace {project.workspace}"
        )
        try:
            result = tf.apply(plan_file_path=filename, stream=sys.stdout)
        finally:
            sys.stdout.write("\n")
            session.action.end_group()

        session.output_summary("mu apply", project, result.raw_log)
        session.hide_result_comments(pr_number, (INIT_META, APPLY_META))
        if result.has_error:
            session.post_comment(pr_number, apply_failed_message(project, result))
            raise ApplyFailedError()
        session.post_comment(pr_number, apply_succeeded_message(project, result))
        session.status.success(sha, project.name, _APPLY, result)
        return ApplyOutput(result=result.result)

    def _download_plan_file(self, directory: str, filename: str, artifact_id: int) -> str:
        path = os.path.normpath(os.path.join(directory, filename + ".zip"))
        with open(path, "wb") as file:
            self._session.github.download_artifact(artifact_id, file)
        return path