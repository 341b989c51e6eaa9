"""Expanding image layer archives and hashing operator bundle contents."""

from __future__ import annotations

import hashlib
import logging
import os
import posixpath
import shutil
import tarfile
from pathlib import Path
from typing import BinaryIO, Optional, Union

logger = logging.getLogger(__name__)

HASHES_FILENAME = "hashes.txt"

# Messages tarfile uses when a stream ends before its first header; an
# archive with no entries at all is not an error.
_EMPTY_ARCHIVE_MESSAGES = frozenset({"empty file", "end of file header"})


def _clean(path: str) -> str:
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _join(*parts: str) -> str:
    """Join non-empty parts with "/" and clean the result."""
    joined = "/".join(part for part in parts if part)
    return _clean(joined) if joined else ""


def _dirname(path: str) -> str:
    directory = posixpath.dirname(path)
    return _clean(directory) if directory else "."


def resolve_link_paths(oldname: str, newname: str) -> tuple[str, str]:
    """Return oldname resolved against the directory of newname, and newname.

    Absolute link targets are returned unchanged. A relative target of a link
    at the archive root is resolved against "/", so leading ".." segments are
    dropped.
    """
    if oldname.startswith("/"):
        return oldname, newname

    link_dir = _dirname(newname)
    if link_dir == ".":
        link_dir = "/"
    return _join(link_dir, oldname), newname


def _ensure_dir(directory: str) -> None:
    if not os.path.exists(directory):
        os.makedirs(directory, 0o755, exist_ok=True)


def _write_regular(archive: tarfile.TarFile, member: tarfile.TarInfo, target: str) -> None:
    _ensure_dir(_dirname(target))
    fd = os.open(target, os.O_CREAT | os.O_RDWR, member.mode & 0o7777)
    with os.fdopen(fd, "wb") as out:
        source = archive.extractfile(member)
        if source is not None:
            with source:
                shutil.copyfileobj(source, out)


def _write_symlink(dst: str, member: tarfile.TarInfo) -> None:
    link_target, link_name = resolve_link_paths(member.linkname, member.name)
    full_link_target = _join(dst, link_target)
    full_name = _join(dst, link_name)
    if not full_link_target.startswith(dst):
        logger.debug(
            "symlink would reach outside of the image archive, skipping: "
            "link=%s linkedTo=%s resolvedTo=%s",
            member.name,
            member.linkname,
            full_link_target,
        )
        return
    _ensure_dir(_dirname(full_name))
    try:
        os.symlink(full_link_target, full_name)
    except OSError as exc:
        logger.debug("error creating symlink %s, ignoring: %s", member.name, exc)


def _write_hardlink(dst: str, member: tarfile.TarInfo, target: str) -> None:
    original = _join(dst, member.linkname)
    _ensure_dir(_dirname(target))
    try:
        os.link(original, target)
    except OSError as exc:
        logger.debug("error creating hard link %s, ignoring: %s", member.name, exc)


def untar(dst: str, fileobj: BinaryIO) -> None:
    """Expand the tar stream in fileobj into the directory dst.

    Directories, regular files, symbolic links and hard links are created;
    other entry types are ignored. Symbolic links that would resolve outside
    dst are skipped, and links that cannot be created are ignored. A stream
    that is not a tar archive raises tarfile.ReadError.
    """
    try:
        archive = tarfile.open(fileobj=fileobj, mode="r|")
    except tarfile.ReadError as exc:
        if str(exc) in _EMPTY_ARCHIVE_MESSAGES:
            return
        raise

    with archive:
        for member in archive:
            target = _join(dst, member.name)
            if member.isdir():
                _ensure_dir(target)
            elif member.isreg():
                _write_regular(archive, member, target)
            elif member.issym():
                _write_symlink(dst, member)
            elif member.islnk():
                _write_hardlink(dst, member, target)


def _bundle_file_sums(bundle_path: str) -> dict[str, str]:
    """Map the md5 of each bundle file to its "./"-prefixed relative path.

    The walk is lexical and stops at the first unreadable entry; files with
    identical contents keep the path seen last.
    """
    files: dict[str, str] = {}

    def visit(directory: str, relative: str) -> None:
        with os.scandir(directory) as iterator:
            entries = sorted(iterator, key=lambda entry: entry.name)
        for entry in entries:
            rel = f"{relative}/{entry.name}" if relative else entry.name
            if entry.name == "Dockerfile" and not entry.is_dir(follow_symlinks=False):
                continue
            if entry.is_dir(follow_symlinks=False):
                visit(entry.path, rel)
                continue
            with open(entry.path, "rb") as handle:
                digest = hashlib.md5(handle.read()).hexdigest()
            files[digest] = f"./{rel}"

    try:
        visit(bundle_path, "")
    except OSError as exc:
        logger.debug("could not read bundle directory %s: %s", bundle_path, exc)
    return files


def generate_bundle_hash(
    bundle_path: str, artifacts_dir: Optional[Union[str, os.PathLike]] = None
) -> str:
    """Return the md5 over the sorted per-file md5 listing of a bundle.

    Files named Dockerfile are left out. When artifacts_dir is given, the
    listing is also written there as hashes.txt.
    """
    files = _bundle_file_sums(bundle_path)
    listing = "".join(f"{digest}  {files[digest]}\n" for digest in sorted(files))
    data = listing.encode("utf-8")

    if artifacts_dir is not None:
        Path(artifacts_dir, HASHES_FILENAME).write_bytes(data)

    total = hashlib.md5(data).hexdigest()
    logger.debug("md5 sum %s", total)
    return total