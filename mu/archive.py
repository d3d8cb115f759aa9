"""Extraction of zip archives that hold downloaded plan files."""

from __future__ import annotations

import os
import shutil
import stat
import zipfile

from mu.errors import MuError


class IllegalFilePathError(MuError):
    """An archive entry would be extracted outside the destination."""

    default_message = "illegal file path"


_DEFAULT_DIR_MODE = 0o755
_DEFAULT_FILE_MODE = 0o644


class ZipArchiver:
    """Extracts zip archives, refusing entries that escape the destination."""

    def decompress(self, dest: str, src: str) -> None:
        with zipfile.ZipFile(src) as archive:
            for info in archive.infolist():
                self._extract(archive, dest, info)

    @staticmethod
    def _extract(archive: zipfile.ZipFile, dest: str, info: zipfile.ZipInfo) -> None:
        path = os.path.normpath(os.path.join(dest, info.filename))
        if not path.startswith(os.path.normpath(dest) + os.sep):
            raise IllegalFilePathError()

        perms = stat.S_IMODE(info.external_attr >> 16)
        if info.is_dir():
            os.makedirs(path, perms or _DEFAULT_DIR_MODE, exist_ok=True)
            return

        os.makedirs(os.path.dirname(path), perms or _DEFAULT_DIR_MODE, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, perms or _DEFAULT_FILE_MODE)
        with os.fdopen(fd, "wb") as target, archive.open(info) as source:
            shutil.copyfileobj(source, target)