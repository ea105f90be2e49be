"""Deterministic packaging of the function source into a content-addressed zip."""
import fnmatch
import hashlib
import os
import tempfile
import zipfile
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import pulumi

from errors import FunctionConfigError

# Fixed metadata so the archive bytes depend on file contents only.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o100666
_CREATE_SYSTEM_UNIX = 3


@dataclass(frozen=True)
class Artifact:
    path: str
    digest: str
    object_name: str


def default_output_path(function_name: str) -> str:
    return os.path.join(tempfile.gettempdir(), f"bundle-{function_name}.zip")


def _is_excluded(rel_path: str, excludes: Iterable[str]) -> bool:
    for pattern in excludes:
        pattern = pattern.strip("/")
        if rel_path == pattern or rel_path.startswith(pattern + "/"):
            return True
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
    return False


def collect_files(source_dir: str, excludes: Iterable[str] = (), skip: Optional[str] = None) -> List[str]:
    """Relative posix paths of the files to package, sorted."""
    excludes = tuple(excludes)
    skip = os.path.abspath(skip) if skip else None
    files = []
    for root, dirs, filenames in os.walk(source_dir):
        dirs.sort()
        for filename in filenames:
            filepath = os.path.join(root, filename)
            if skip and os.path.abspath(filepath) == skip:
                continue
            rel_path = os.path.relpath(filepath, source_dir).replace(os.sep, "/")
            if not _is_excluded(rel_path, excludes):
                files.append(rel_path)
    return sorted(files)


def package_directory(source_dir: str, excludes: Iterable[str], output_path: str) -> Tuple[str, str]:
    """Zips `source_dir` into `output_path` and returns (archive path, md5 hex digest)."""
    if not os.path.isdir(source_dir):
        raise FunctionConfigError(f"Bundle source_dir '{source_dir}' is not a directory")

    files = collect_files(source_dir, excludes, skip=output_path)
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for rel_path in files:
            info = zipfile.ZipInfo(rel_path, date_time=_ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.create_system = _CREATE_SYSTEM_UNIX
            info.external_attr = _FILE_MODE << 16
            with open(os.path.join(source_dir, rel_path), "rb") as f:
                archive.writestr(info, f.read())

    hasher = hashlib.md5()
    with open(output_path, "rb") as f:
        while chunk := f.read(8192):
            hasher.update(chunk)
    return output_path, hasher.hexdigest()


def name_artifact(source_dir: str, excludes: Iterable[str], output_path: str) -> Artifact:
    """Packages `source_dir` and names the storage object after the archive digest.

    Identical contents and excludes always produce the same object name, so an
    unchanged bundle is never re-uploaded under a new name.
    """
    path, digest = package_directory(source_dir, excludes, output_path)
    object_name = f"bundle-{digest}.zip"
    pulumi.log.info(f"Packaged '{source_dir}' as {object_name}")
    return Artifact(path=path, digest=digest, object_name=object_name)
