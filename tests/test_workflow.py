import io
import json
import logging
import os
from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest
import yaml

from mu.action import Action
from mu.errors import (
    AlreadyExistsError,
    InvalidForceUnlockError,
    NotFoundError,
    PlanFileNotFoundError,
)
from mu.messages import help_message
from mu.session import Session
from mu.workflow import Workflow, find_project_configs


class FakeGithub:
    def __init__(self, files=(), pull_request=None, artifacts=None, labels=None):
        self.files = list(files)
        self.pull_request = pull_request
        self.artifacts = artifacts or {}
        self.labels = dict(labels or {})
        self.created_labels = []
        self.comments = []
        self.statuses = []
        self.deleted_artifacts = []

    def list_files(self, number):
        return list(self.files)

    def list_reviews(self, number):
        return []

    def get_pull_request(self, number):
        return self.pull_request

    def create_label(self, name, description, color):
        if name in self.labels:
            raise AlreadyExistsError()
        self.labels[name] = description
        self.created_labels.append(name)

    def delete_label(self, name):
        if name not in self.labels:
            raise NotFoundError()
        del self.labels[name]

    def add_pull_request_labels(self, number, labels):
        pass

    def find_pull_request_by_label(self, label):
        raise NotFoundError()

    def get_label(self, name):
        return SimpleNamespace(name=name, description=self.labels[name])

    def create_issue_comment(self, number, body):
        self.comments.append((number, body))

    def create_commit_status(self, status):
        self.statuses.append(status)

    def list_pull_request_comments(self, number):
        return []

    def hide_issue_comment(self, comment_id):
        pass

    def list_pull_requests_by_label(self, label, limit):
        return [self.pull_request]

    def multi_get_artifacts_by_names(self, names):
        return {name: self.artifacts[name] for name in names if name in self.artifacts}

    def delete_artifacts_by_names(self, names):
        self.deleted_artifacts.append(list(names))


class FakeTerraform:
    def setup(self):
        pass

    def compare_version(self, version):
        pass

    def switch_workspace(self, workspace):
        pass

    def init(self, **kwargs):
        return SimpleNamespace(has_error=False, raw_log="", result="")

    def plan(self, **kwargs):
        return SimpleNamespace(
            result="Plan: 1 to add",
            has_error=False,
            raw_log="plan log",
            changed_result="",
            warning="",
        )


@dataclass
class FakePlan:
    auto: bool = True

    def has_matched_paths(self, directory, files):
        return any(f.startswith(directory + "/") for f in files)


@dataclass
class FakeProject:
    name: str
    dir: str
    workspace: str = "default"
    plan: FakePlan = field(default_factory=FakePlan)
    terraform: object = None
    lock_label_color: str = ""

    def has_modified_files(self, files):
        return any(f.startswith(self.dir + "/") for f in files)


@dataclass
class FakeConfig:
    projects: list

    def get_project(self, name):
        return next((p for p in self.projects if p.name == name), None)


def make_config():
    return FakeConfig(
        projects=[
            FakeProject(name="app", dir="envs/app"),
            FakeProject(name="db", dir="envs/db", plan=FakePlan(auto=False)),
        ]
    )


def make_workflow(github, upload_dir="artifacts"):
    session = Session(
        github=github,
        action=Action(io.StringIO()),
        terraform=FakeTerraform(),
        logger=logging.getLogger("test"),
        disable_summary_log=True,
    )
    return Workflow(session, "v4", str(upload_dir))


@pytest.fixture(autouse=True)
def _environment(monkeypatch):
    monkeypatch.delenv("GITHUB_STEP_SUMMARY", raising=False)
    monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
    monkeypatch.setenv("GITHUB_REPOSITORY", "test/mu")
    monkeypatch.setenv("GITHUB_RUN_ID", "42")


def test_find_project_configs_by_modified_files():
    config = make_config()
    found = find_project_configs(config, "", ["envs/db/main.tf", "README.md"])
    assert [p.name for p in found] == ["db"]


def test_find_project_configs_by_name():
    config = make_config()
    assert [p.name for p in find_project_configs(config, "app", [])] == ["app"]
    assert find_project_configs(config, "missing", ["envs/app/main.tf"]) == []


def test_execute_help():
    github = FakeGithub()
    make_workflow(github).execute_help(3)
    assert github.comments == [(3, help_message())]


def test_execute_plan_in_progress_is_reported():
    github = FakeGithub(labels={"mu_in_progress_3": "commit: abc"})
    make_workflow(github).execute_plan(3, "abc", make_config(), SimpleNamespace(project=""))
    assert len(github.comments) == 1
    assert "mu_in_progress_3" in github.comments[0][1]
    assert github.statuses == []


def test_execute_plan_without_projects():
    github = FakeGithub(files=["README.md"])
    make_workflow(github).execute_plan(3, "abc", make_config(), SimpleNamespace(project=""))
    assert github.comments == [(3, "There is no project to run `mu plan` on.")]
    assert "mu_in_progress_3" not in github.labels
    assert github.created_labels == ["mu_in_progress_3"]


def test_execute_plan_named_project_without_changes():
    github = FakeGithub(files=["envs/db/main.tf"])
    make_workflow(github).execute_plan(3, "abc", make_config(), SimpleNamespace(project="app"))
    assert github.comments == [(3, "The specified project could not be found.")]


def test_execute_auto_plan_uploads_plan(tmp_path, monkeypatch):
    output_file = tmp_path / "output.txt"
    monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))
    upload_dir = tmp_path / "artifacts"
    github = FakeGithub(files=["envs/app/main.tf", "envs/db/main.tf"])

    make_workflow(github, upload_dir).execute_auto_plan(7, "sha-1", make_config())

    lines = output_file.read_text(encoding="utf-8").splitlines()
    projects_line = next(line for line in lines if line.startswith("projects="))
    assert json.loads(projects_line[len("projects="):]) == [
        {
            "name": "app",
            "dir": "envs/app",
            "workspace": "default",
            "mode": "plan",
            "result": "Plan: 1 to add",
            "action_url": "https://github.com/test/mu/actions/runs/42",
        }
    ]
    assert "upload_artifact=true" in lines

    action = yaml.safe_load((upload_dir / "action.yaml").read_text(encoding="utf-8"))
    step = action["runs"]["steps"][0]
    assert step["name"] == "mu_app_default_7"
    assert step["uses"] == "actions/upload-artifact@v4"
    assert step["with"]["path"] == os.path.normpath("envs/app/app_default_7.tfplan")
    assert "mu_in_progress_7" not in github.labels
    assert github.labels["mu_lock_app"] == "PR: #7"


def test_execute_auto_plan_without_auto_projects(tmp_path):
    github = FakeGithub(files=["envs/db/main.tf"])
    make_workflow(github, tmp_path / "artifacts").execute_auto_plan(7, "sha-1", make_config())
    assert github.created_labels == []
    assert not (tmp_path / "artifacts").exists()


def test_execute_apply_without_projects():
    github = FakeGithub(files=["README.md"])
    make_workflow(github).execute_apply(3, "abc", make_config(), SimpleNamespace(project=""))
    assert github.comments == [(3, "There is no project to plan.")]


def test_execute_import_without_plan_file():
    github = FakeGithub(files=["envs/app/main.tf"])
    command = SimpleNamespace(project="app", address="a.b", id="x")
    with pytest.raises(PlanFileNotFoundError):
        make_workflow(github).execute_import(4, "abc", make_config(), command)
    assert "mu_in_progress_4" not in github.labels
    assert github.deleted_artifacts == []


def test_execute_state_rm_needs_one_project():
    github = FakeGithub(files=["envs/app/main.tf", "envs/db/main.tf"])
    command = SimpleNamespace(project="", addresses=["a.b"], dry_run=False)
    make_workflow(github).execute_state_rm(4, "abc", make_config(), command)
    assert github.comments == [(4, "Please limit to one target project.")]


def test_execute_unlock_force_with_many_projects():
    pull_request = SimpleNamespace(number=3, labels=[])
    github = FakeGithub(files=["envs/app/main.tf", "envs/db/main.tf"], pull_request=pull_request)
    command = SimpleNamespace(project="", force_unlock_id="lock-1")
    with pytest.raises(InvalidForceUnlockError):
        make_workflow(github).execute_unlock(3, make_config(), command)
    assert github.deleted_artifacts == []


def test_execute_unlock_named_project():
    pull_request = SimpleNamespace(number=3, labels=[SimpleNamespace(name="mu_lock_app")])
    github = FakeGithub(pull_request=pull_request, labels={"mu_lock_app": "PR: #3"})
    command = SimpleNamespace(project="app", force_unlock_id="")
    make_workflow(github).execute_unlock(3, make_config(), command)
    assert "mu_lock_app" not in github.labels
    assert github.comments == [(3, ":unlock: Unlocked the `app` project")]
    assert github.deleted_artifacts == [["mu_app_default_3"]]


def test_execute_unlock_without_matching_project():
    github = FakeGithub(files=["README.md"])
    make_workflow(github).execute_unlock(3, make_config(), SimpleNamespace(project="", force_unlock_id=""))
    assert github.deleted_artifacts == []
    assert github.comments == []