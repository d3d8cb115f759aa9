# mu

Building blocks for Terraform pull request automation inside a GitHub Actions
job. For each Terraform project that a pull request touches, mu runs `init`
and `plan` or `apply`, posts the result as a pull request comment, sets a
commit status, and keeps each project locked to one pull request at a time
with labels.

## What it does

- **Plan** (`mu.workflow.Workflow.execute_plan`, `execute_auto_plan`) – plans
  the named project, or every project whose files changed; auto plan only
  covers projects whose `plan.auto` is set. Plan files are listed in a
  generated upload action so they can be kept as Actions artifacts.
- **Apply** (`execute_apply`) – applies the stored plan file of each project,
  after checking the required number of approving reviews, then deletes the
  artifacts that were applied.
- **Import** and **state rm** (`execute_import`, `execute_state_rm`) – run on
  exactly one project; otherwise the pull request is asked to name one.
- **Unlock** (`execute_unlock`) – releases project locks held by the pull
  request, optionally runs a terraform force unlock first (one project only),
  and deletes the related artifacts.
- **Help** (`execute_help`) – posts the usage text.
- **Locking** (`mu.locks.Locker`) – a `mu_lock_<project>` label marks which
  pull request holds a project; another pull request is told who holds it and
  gets `AlreadyLockedError`.
- **Progress guard** – a `mu_in_progress_<number>` label stops two runs from
  working on the same pull request at once; a second run comments and stops.
- **Long output** (`mu.messages.split_messages`) – comments larger than
  GitHub allows are split, with code blocks, `<details>` sections and warning
  alerts closed and reopened in each part.
- **Comment hygiene** – earlier plan, apply and init comments posted by
  `github-actions` are minimized before new results are posted.

## Wiring it up

Everything runs through a `mu.session.Session`, which holds the clients:

```python
import sys
from mu.action import Action
from mu.session import Session
from mu.workflow import Workflow

session = Session(
    github=my_github_client,
    action=Action(sys.stdout),
    terraform_factory=my_terraform_factory,   # or terraform=one_runner
    disable_summary_log=False,
)
workflow = Workflow(session, upload_artifact_version="v4",
                    upload_artifact_dir="./upload-artifact")
workflow.execute_plan(pr_number, head_sha, config, command)
```

The objects passed in are duck-typed:

- **GitHub client** – `create_label`, `get_label`, `delete_label`,
  `add_pull_request_labels`, `find_pull_request_by_label`,
  `list_pull_requests_by_label`, `get_pull_request`, `list_files`,
  `list_reviews`, `create_issue_comment`, `list_pull_request_comments`,
  `hide_issue_comment`, `create_commit_status` (given a
  `mu.status.CommitStatus`), `download_artifact`,
  `multi_get_artifacts_by_names`, `delete_artifacts_by_names`. It signals a
  missing resource with `mu.errors.NotFoundError` and a duplicate with
  `mu.errors.AlreadyExistsError`.
- **Terraform runner** – `setup`, `compare_version`, `switch_workspace`,
  `init`, `plan`, `apply`, `force_unlock`, `import_resource`, `state_rm`,
  each returning an object with `result`, `raw_log` and `has_error` (plans
  also `changed_result` and `warning`). `terraform_factory` is called with
  `version`, `work_dir` and `exec_path`.
- **Config and projects** – `config.projects`, `config.get_project(name)`;
  a project has `name`, `dir`, `workspace`, `lock_label_color`, `terraform`
  settings, `plan.auto`, `plan.has_matched_paths(dir, files)`,
  `apply.require_approvals` and `has_modified_files(files)`.

## Smaller pieces

Reading action inputs and writing workflow output:

```python
import sys
from mu.action import Action, get_input

config_path = get_input("config_path")      # reads INPUT_CONFIG_PATH
act = Action(sys.stdout)
act.group("mu plan", "plan output here")     # ::group:: ... ::endgroup::
act.output("upload_artifact", "true")        # appended to $GITHUB_OUTPUT
act.add_step_summary("## mu plan\n")         # appended to $GITHUB_STEP_SUMMARY
```

Writing the upload step for plan files:

```python
from mu.artifact import Artifact, render_action, upload_artifacts

artifacts = [Artifact(name="mu_aws_default_1", path="aws_default_1.tfplan", overwrite=True)]
print(render_action("v4", artifacts))
upload_artifacts("v4", "./upload-artifact", artifacts)   # writes action.yaml
```

Unpacking a downloaded plan file, refusing entries that would escape the
target directory (`IllegalFilePathError`):

```python
from mu.archive import ZipArchiver

ZipArchiver().decompress("./infra", "./infra/aws_default_1.tfplan.zip")
```

Formatting comments:

```python
from mu.messages import format_markdown_alert, help_message, split_messages

print(help_message())
print(format_markdown_alert("WARNING", "deprecated argument"))
for part in split_messages("line\n" * 20000):
    print(len(part))
```

## Errors

Failures are raised as subclasses of `mu.errors.MuError`, for example
`AlreadyLockedError`, `InitFailedError`, `PlanFailedError`,
`ApplyFailedError`, `ApprovalsRequiredError`, `PlanFileNotFoundError`,
`ForceUnlockFailedError`, `ImportFailedError`, `MultipleLockLabelsError` and
`InvalidForceUnlockError`. When planning or applying fails, a failure commit
status is set before the error propagates.

## What it does not do

mu is a library, not a ready-to-run action. It has no command-line entry
point, no GitHub API client, no Terraform runner, no loader for the project
configuration file, no parser for `mu ...` comments and no dispatcher for
pull request or comment events. Those are supplied by the caller as the
objects described above.

## Requirements

Python 3.10 or later and PyYAML.