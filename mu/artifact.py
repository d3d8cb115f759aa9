"""Generation of a composite action that uploads plan files as artifacts."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass

import yaml

_USING = "composite"
_USES = "actions/upload-artifact@"
_ACTION_FILE = "action.yaml"


@dataclass
class Artifact:
    """A file to upload under a given artifact name."""

    name: str
    path: str
    overwrite: bool = False


class _IndentedDumper(yaml.SafeDumper):
    """Dumper that indents block sequences inside mappings."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def _with_options(artifact: Artifact) -> dict:
    options: dict = {}
    if artifact.name:
        options["name"] = artifact.name
    if artifact.path:
        options["path"] = artifact.path
    if artifact.overwrite:
        options["overwrite"] = True
    return options


def render_action(version: str, artifacts: Iterable[Artifact]) -> str:
    """Return the YAML of a composite action uploading ``artifacts``."""
    steps = [
        {
            "name": artifact.name,
            "uses": _USES + version,
            "with": _with_options(artifact),
        }
        for artifact in artifacts
    ]
    document = {"runs": {"using": _USING, "steps": steps}}
    return yaml.dump(
        document,
        Dumper=_IndentedDumper,
        indent=2,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def upload_artifacts(version: str, directory: str, artifacts: Iterable[Artifact]) -> str:
    """Write the upload action into ``directory`` and return the file path."""
    content = render_action(version, artifacts)
    if not os.path.isdir(directory):
        os.mkdir(directory, 0o755)
    path = os.path.join(directory, _ACTION_FILE)
    with open(path, "w", encoding="utf-8") as file:
        file.write(content)
    return path