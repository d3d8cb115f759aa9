"""Commands run for a pull request: plan, apply, import, state rm, unlock and help."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass
from typing import Any

from mu.action import run_url
from mu.apply import ApplyRunner
from mu.artifact import Artifact, upload_artifacts
from mu.errors import (
    AlreadyExistsError,
    InvalidForceUnlockError,
    NotFoundError,
    PlanFileNotFoundError,
)
from mu.maintenance import force_unlock, import_resource, state_rm
from mu.messages import help_message
from mu.plan import PlanRunner
from mu.session import Session, artifact_name

_LIMIT_TO_ONE = "Please limit to one target project."
_NOT_FOUND = "The specified project could not be found."

_JSON_ESCAPES = (
    ("&", "\\u0026"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


@dataclass
class _ProjectResult:
    name: str
    dir: str
    workspace: str
    mode: str
    result: str
    action_url: str


def _to_json(results: Iterable[_ProjectResult]) -> str:
    text = json.dumps(
        [asdict(result) for result in results], ensure_ascii=False, separators=(",", ":")
    )
    for char, escaped in _JSON_ESCAPES:
        text = text.replace(char, escaped)
    return text


def find_project_configs(config: Any, project: str, modified_files: list[str]) -> list[Any]:
    """Return the named project, or every project touched by ``modified_files``."""
    if not project:
        return [
            prj for prj in config.projects if prj.plan.has_matched_paths(prj.dir, modified_files)
        ]
    found = config.get_project(project)
    return [found] if found is not None else []


class Workflow:
    """Runs mu commands for a pull request."""

    def __init__(
        self, session: Session, upload_artifact_version: str, upload_artifact_dir: str
    ) -> None:
        self._session = session
        self._upload_artifact_version = upload_artifact_version
        self._upload_artifact_dir = upload_artifact_dir

    def _exclusively(self, pr_number: int, sha: str, body: Callable[[], None]) -> None:
        """Run ``body`` while holding the progress label of the pull request."""
        session = self._session
        try:
            session.create_progress_label(pr_number, sha)
        except AlreadyExistsError:
            session.report_in_progress(pr_number)
            return
        try:
            body()
        finally:
            try:
                session.delete_progress_label(pr_number)
            except Exception as exc:
                session.logger.error("%s", exc)

    def _plan_projects(self, pr_number: int, sha: str, projects: Iterable[Any], command: Any,
                       skip_unmodified: list[str] | None) -> bool:
        results: list[_ProjectResult] = []
        artifacts: list[Artifact] = []
        runner = PlanRunner(self._session)
        for project in projects:
            if skip_unmodified is not None and not project.has_modified_files(skip_unmodified):
                self._session.logger.info(
                    "not found: project=%s", getattr(command, "project", "")
                )
                continue
            out = runner.run(pr_number, sha, project, command)
            results.append(
                _ProjectResult(
                    name=project.name,
                    dir=project.dir,
                    workspace=project.workspace,
                    mode="plan",
                    result=out.result,
                    action_url=run_url(),
                )
            )
            artifacts.append(
                Artifact(
                    name=artifact_name(project.name, project.workspace, pr_number),
                    path=out.path,
                    overwrite=True,
                )
            )
        if not results:
            return False
        self._session.action.output("projects", _to_json(results))
        upload_artifacts(self._upload_artifact_version, self._upload_artifact_dir, artifacts)
        self._session.action.output("upload_artifact", "true")
        return True

    def execute_auto_plan(self, pr_number: int, sha: str, config: Any) -> None:
        """Plan every auto-planned project touched by the pull request."""
        modified_files = self._session.github.list_files(pr_number)
        projects = [
            project
            for project in config.projects
            if project.plan.auto and project.plan.has_matched_paths(project.dir, modified_files)
        ]
        if not projects:
            return
        self._exclusively(
            pr_number, sha, lambda: self._plan_projects(pr_number, sha, projects, None, None)
        )

    def execute_plan(self, pr_number: int, sha: str, config: Any, command: Any) -> None:
        def body() -> None:
            github = self._session.github
            modified_files = github.list_files(pr_number)
            projects = find_project_configs(
                config, getattr(command, "project", ""), modified_files
            )
            if not projects:
                github.create_issue_comment(
                    pr_number, "There is no project to run `mu plan` on."
                )
                return
            if not self._plan_projects(pr_number, sha, projects, command, modified_files):
                github.create_issue_comment(pr_number, _NOT_FOUND)

        self._exclusively(pr_number, sha, body)

    def execute_apply(self, pr_number: int, sha: str, config: Any, command: Any) -> None:
        def body() -> None:
            session = self._session
            github = session.github
            modified_files = github.list_files(pr_number)
            reviews = github.list_reviews(pr_number)
            projects = find_project_configs(
                config, getattr(command, "project", ""), modified_files
            )
            if not projects:
                github.create_issue_comment(pr_number, "There is no project to plan.")
                return

            names = [artifact_name(p.name, p.workspace, pr_number) for p in projects]
            artifacts = github.multi_get_artifacts_by_names(names)

            runner = ApplyRunner(session)
            results: list[_ProjectResult] = []
            applied: list[str] = []
            for project in projects:
                if not project.has_modified_files(modified_files):
                    session.logger.info("Not found: project=%s", getattr(command, "project", ""))
                    continue
                name = artifact_name(project.name, project.workspace, pr_number)
                artifact = artifacts.get(name) if artifacts is not None else None
                out = runner.run(pr_number, sha, project, artifact, reviews)
                results.append(
                    _ProjectResult(
                        name=project.name,
                        dir=project.dir,
                        workspace=project.workspace,
                        mode="apply",
                        result=out.result,
                        action_url=run_url(),
                    )
                )
                applied.append(name)
            if not results:
                github.create_issue_comment(pr_number, _NOT_FOUND)
                return
            session.action.output("projects", _to_json(results))
            github.delete_artifacts_by_names(applied)

        self._exclusively(pr_number, sha, body)

    def execute_import(self, pr_number: int, sha: str, config: Any, command: Any) -> None:
        def body() -> None:
            github = self._session.github
            modified_files = github.list_files(pr_number)
            projects = find_project_configs(
                config, getattr(command, "project", ""), modified_files
            )
            if len(projects) != 1:
                github.create_issue_comment(pr_number, _LIMIT_TO_ONE)
                return
            project = projects[0]
            name = artifact_name(project.name, project.workspace, pr_number)
            artifacts = github.multi_get_artifacts_by_names([name])
            if artifacts is None or artifacts.get(name) is None:
                raise PlanFileNotFoundError()
            import_resource(self._session, pr_number, project, command)
            # The state may have changed, so the stored plan is no longer valid.
            github.delete_artifacts_by_names([name])

        self._exclusively(pr_number, sha, body)

    def execute_state_rm(self, pr_number: int, sha: str, config: Any, command: Any) -> None:
        def body() -> None:
            github = self._session.github
            modified_files = github.list_files(pr_number)
            projects = find_project_configs(
                config, getattr(command, "project", ""), modified_files
            )
            if len(projects) != 1:
                github.create_issue_comment(pr_number, _LIMIT_TO_ONE)
                return
            state_rm(self._session, pr_number, projects[0], command)

        self._exclusively(pr_number, sha, body)

    def execute_unlock(self, pr_number: int, config: Any, command: Any) -> None:
        """Release project locks held by the pull request and discard its plans."""
        session = self._session
        github = session.github
        project_name = getattr(command, "project", "") or ""
        lock_id = getattr(command, "force_unlock_id", "") or ""

        if project_name:
            projects = find_project_configs(config, project_name, [])
        else:
            projects = find_project_configs(config, "", github.list_files(pr_number))
        if not projects:
            return

        pull_request = github.get_pull_request(pr_number)
        if len(projects) > 1 and lock_id:
            raise InvalidForceUnlockError()

        names: list[str] = []
        for project in projects:
            if len(projects) == 1 and lock_id:
                force_unlock(session, pr_number, project, command)
            session.locker.unlock(project.name, pull_request)
            names.append(artifact_name(project.name, project.workspace, pr_number))

        github.delete_artifacts_by_names(names)
        try:
            session.delete_progress_label(pr_number)
        except NotFoundError:
            pass

    def execute_help(self, pr_number: int) -> None:
        self._session.github.create_issue_comment(pr_number, help_message())