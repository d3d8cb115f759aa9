"""Markdown comments and summaries posted on pull requests."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from typing import Any

INIT_META = "<!-- mu:init -->"
PLAN_META = "<!-- mu:plan -->"
APPLY_META = "<!-- mu:apply -->"

MAX_COMMENT_LENGTH = 65536
SPLIT_SIZE = MAX_COMMENT_LENGTH - 5536

_START_DETAILS = "<details>"
_END_DETAILS = "</details>"
_START_SUMMARY = "<summary>"
_END_SUMMARY = "</summary>"
_CODE_BLOCK = "```"
_DIFF = "diff"
_WARNING = "> [!WARNING]"

_DIFF_KEYWORD = re.compile(r"^( +)([-+~])", re.MULTILINE)
_DIFF_TILDE = re.compile(r"^~", re.MULTILINE)

_HELP = """Mu
Terraform Pull Request Automation

Usage:
  mu <command> [options] -- [terraform options]

Examples:
  # show atlantis help
  mu help

  # run plan in the project passing the -var flag to terraform
  mu plan -p <project> -- -var name=test

  # apply the plan for the project
  mu apply -p <project>

Commands:
  plan     Runs 'terraform plan' for the changes in this pull request.
           To plan a specific project, use the -p flags.

  apply    Runs 'terraform apply' on all unapplied plans from this pull request.
           To only apply a specific plan, use the -p flags.

  unlock   Removes all mu locks and discards all plans for this pull request.

  help     View help.

"""


def _scan_lines(text: str) -> list[str]:
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _project_line(project: Any) -> str:
    return f"project: `{project.name}` dir: `{project.dir}` workspace: `{project.workspace}`\n"


def unknown_command_message(command_type: str, allow_commands: Iterable[str]) -> str:
    quoted = json.dumps(command_type, ensure_ascii=False)
    return (
        "```\n"
        f"Error: unknown command {quoted}.\n"
        "Run 'mu help' for usage.\n"
        f"Available commands: {', '.join(allow_commands)}\n"
        "```\n"
    )


def help_message() -> str:
    return "```\n" + _HELP + "```\n"


def format_markdown_alert(alert: str, text: str) -> str:
    """Quote ``text`` as a GitHub alert block; empty text gives an empty string."""
    if not text:
        return ""
    lines = [f"> [!{alert.upper()}]\n"]
    lines.extend(f"> {line}\n" for line in _scan_lines(text))
    return "".join(lines)


def split_messages(text: str) -> list[str]:
    """Split a comment into parts that fit GitHub's comment size limit.

    Open details, code blocks and warning alerts are closed at the end of a
    part and reopened at the start of the next.
    """
    messages: list[str] = []
    parts: list[str] = []
    is_details = is_code_block = is_warning = is_diff = False
    summary_title = ""
    code_block_space = ""
    count = 0

    for line in _scan_lines(text):
        if line.startswith(_START_DETAILS + _START_SUMMARY):
            is_details = True
            start = len(_START_DETAILS + _START_SUMMARY)
            end = line.find(_END_SUMMARY)
            summary_title = line[start:end] if end >= 0 else line[start:]
        elif line.startswith(_END_DETAILS):
            is_details = False
        elif _CODE_BLOCK in line and not is_code_block:
            is_code_block = True
            code_block_space = line[: line.index(_CODE_BLOCK)]
            if _CODE_BLOCK + _DIFF in line:
                is_diff = True
        elif _CODE_BLOCK in line and is_code_block:
            is_code_block = False
            is_diff = False
        elif not is_warning and line.startswith(_WARNING):
            is_warning = True

        size = len(line.encode("utf-8")) + 1
        if count + size > SPLIT_SIZE:
            if is_code_block:
                parts.append(code_block_space + "```\n\n")
            if is_details:
                parts.append("</details>\n")
            parts.append("\n**Warning** Continued in next comment.\n")
            messages.append("".join(parts))
            parts = ["Continued from previous comment.\n\n"]
            count = 0
            if is_details:
                parts.append(f"<details><summary>{summary_title}</summary>\n\n")
            if is_code_block:
                parts.append(code_block_space + "```" + (_DIFF if is_diff else "") + "\n")
            if is_warning:
                parts.append(_WARNING + "\n")

        parts.append(line + "\n")
        count += size

    if parts:
        messages.append("".join(parts))
    return messages


def diff_markdown(text: str) -> str:
    """Move diff markers to the line start and turn ``~`` into ``!``."""
    formatted = _DIFF_KEYWORD.sub(r"\2\1", text)
    return _DIFF_TILDE.sub("!", formatted)


def format_diff_markdown_change_result(result: str) -> str | None:
    if not result:
        return None
    return "".join(diff_markdown(line) + "\n" for line in _scan_lines(result))


def init_failed_message(project: Any, output: Any) -> str:
    return (
        INIT_META
        + "\n:x: **Init Failed**\n"
        + _project_line(project)
        + format_markdown_alert("CAUTION", output.result)
    )


def plan_succeeded_message(project: Any, output: Any) -> str:
    parts = [
        PLAN_META,
        "\n:white_check_mark: **Plan Result**\n",
        _project_line(project),
        "\n```\n",
        output.result,
        "\n```\n\n\n",
    ]
    change = format_diff_markdown_change_result(output.changed_result)
    if change is not None:
        parts += [
            "<details><summary>Show Output</summary>\n\n",
            "```diff\n",
            change,
            "\n```\n</details>\n\n",
        ]
    parts.append("**next step**\n")
    for intro, verb in (
        ("To apply this plan", "apply"),
        ("To delete this plan and lock", "unlock"),
        ("To plan this project again", "plan"),
    ):
        parts += [
            f"- {intro}, comment:\n",
            "  ```\n",
            f"  mu {verb} -p {project.name}\n",
            "  ```\n",
        ]
    warning = format_markdown_alert("WARNING", output.warning)
    if warning:
        parts += [warning, "\n\n"]
    return "".join(parts)


def plan_failed_message(project: Any, output: Any) -> str:
    return (
        PLAN_META
        + "\n:x: **Plan Failed**\n"
        + _project_line(project)
        + format_markdown_alert("CAUTION", output.result)
    )


def apply_succeeded_message(project: Any, output: Any) -> str:
    parts = [
        APPLY_META,
        "\n:white_check_mark: **Apply Result**\n",
        _project_line(project),
        "\n```\n",
        output.result,
        "\n```\n",
    ]
    warning = format_markdown_alert("WARNING", output.warning)
    if warning:
        parts += [warning, "\n\n"]
    return "".join(parts)


def apply_failed_message(project: Any, output: Any) -> str:
    return (
        APPLY_META
        + "\n:x: **Apply Failed**\n"
        + _project_line(project)
        + format_markdown_alert("CAUTION", output.result)
    )


def force_unlock_message(result: Any) -> str:
    header = ":x: **Force Unlock Failed**\n" if result.has_error else ":white_check_mark: **Force Unlock**\n"
    return header + "\n```\n" + result.result + "\n```\n"


def import_message(project: str, address: str, resource_id: str, log: str) -> str:
    return (
        "## mu import -p " + project
        + "\n"
        + "**Address**:" + address
        + "**Id**:" + resource_id
        + "\n```\n"
        + log
        + "\n```\n"
    )


def state_rm_message(address: str, log: str) -> str:
    return "### " + address + "\n```\n" + log + "\n```\n"