"""Helpers for talking to the GitHub Actions runner through its environment."""

from __future__ import annotations

import os
import sys
import threading
from typing import NoReturn, TextIO


def _scan_lines(text: str) -> list[str]:
    """Split text into lines, dropping a trailing empty line and carriage returns."""
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def get_input(name: str) -> str:
    """Return the value of the action input ``name`` (empty when unset)."""
    key = "INPUT_" + name.upper().replace(" ", "_")
    return os.environ.get(key, "")


def failed(msg: str) -> NoReturn:
    """Report an error annotation on stderr and exit with status 1."""
    sys.stderr.write(f"::error::{msg}\n")
    sys.stderr.flush()
    raise SystemExit(1)


def owner() -> str:
    """Return the owner of the repository the workflow runs for."""
    return os.environ.get("GITHUB_REPOSITORY_OWNER", "")


def repo() -> str:
    """Return the repository name without its owner prefix."""
    full = os.environ.get("GITHUB_REPOSITORY", "")
    prefix = owner() + "/"
    if full.startswith(prefix):
        return full[len(prefix):]
    return full


def run_url() -> str:
    """Return the URL of the current workflow run, or an empty string."""
    full = os.environ.get("GITHUB_REPOSITORY", "")
    run_id = os.environ.get("GITHUB_RUN_ID", "")
    if not full or not run_id:
        return ""
    return f"https://github.com/{full}/actions/runs/{run_id}"


def label_url(label: str) -> str:
    """Return the URL of a repository label, or an empty string."""
    full = os.environ.get("GITHUB_REPOSITORY", "")
    if not full or not label:
        return ""
    return f"https://github.com/{full}/labels/{label}"


class Action:
    """Writes workflow outputs, step summaries and log groups."""

    def __init__(self, stdout: TextIO) -> None:
        self._stdout = stdout
        self._output_lock = threading.Lock()
        self._summary_lock = threading.Lock()

    def output(self, key: str, value: str) -> None:
        """Append ``key=value`` to the file named by GITHUB_OUTPUT, if any."""
        path = os.environ.get("GITHUB_OUTPUT", "")
        if not path:
            return
        with self._output_lock:
            self._append(path, f"{key}={value}\n")

    def add_step_summary(self, msg: str) -> None:
        """Append ``msg`` line by line to the file named by GITHUB_STEP_SUMMARY."""
        path = os.environ.get("GITHUB_STEP_SUMMARY", "")
        if not path:
            return
        with self._summary_lock:
            for line in _scan_lines(msg):
                self._append(path, line + "\n")

    @staticmethod
    def _append(path: str, text: str) -> None:
        fd = os.open(path, os.O_APPEND | os.O_CREAT | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "a", encoding="utf-8") as file:
            file.write(text)

    def group(self, title: str, body: str) -> None:
        """Print ``body`` inside a collapsible log group."""
        self.start_group(title)
        self._stdout.write(body + "\n")
        self.end_group()

    def start_group(self, title: str) -> None:
        self._stdout.write(f"::group::{title}\n")

    def end_group(self) -> None:
        self._stdout.write("::endgroup::\n")