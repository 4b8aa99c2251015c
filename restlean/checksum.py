"""Checksums of module directories and module files in the ``h1:`` format."""

import base64
import hashlib
import os
from dataclasses import dataclass

_MOD_FILE_NAME = "go.mod"
_CHUNK = 1 << 16


@dataclass(frozen=True)
class DirHash:
    """The hash of a directory tree."""

    hash_synthesized: str
    hash_synthesized_base64: str
    checksum: str


@dataclass(frozen=True)
class ModHash:
    """The hash of a module file."""

    hash: str
    hash_base64: str
    hash_synthesized: str
    hash_synthesized_base64: str
    checksum: str


def base64_encode(data):
    """Encode bytes as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def _file_digest(stream):
    digest = hashlib.sha256()
    for chunk in iter(lambda: stream.read(_CHUNK), b""):
        digest.update(chunk)
    return digest.hexdigest()


def hash_files(files, opener):
    """Hash the named files, each opened as a binary stream by opener(name)."""
    summary = hashlib.sha256()
    for name in sorted(files):
        if "\n" in name:
            raise ValueError("filenames with newlines are not supported")
        with opener(name) as stream:
            file_hex = _file_digest(stream)
        summary.update(f"{file_hex}  {name}\n".encode("utf-8"))
    raw = summary.digest()
    encoded = base64_encode(raw)
    return DirHash(
        hash_synthesized=raw.hex(),
        hash_synthesized_base64=encoded,
        checksum="h1:" + encoded,
    )


def dir_files(directory, prefix):
    """List all files under directory, skipping .git, as slash paths joined to prefix."""
    root = os.path.normpath(directory)
    files = []

    def walk(current, relative):
        with os.scandir(current) as entries:
            ordered = sorted(entries, key=lambda entry: entry.name)
        for entry in ordered:
            rel = os.path.join(relative, entry.name) if relative else entry.name
            if entry.is_dir(follow_symlinks=False):
                if entry.name != ".git":
                    walk(entry.path, rel)
                continue
            joined = os.path.normpath(os.path.join(prefix, rel)) if prefix else rel
            files.append(joined.replace(os.sep, "/"))

    walk(root, "")
    return files


def hash_dir(directory, prefix):
    """Hash every file under directory, naming each by its path joined to prefix."""
    files = dir_files(directory, prefix)

    def opener(name):
        relative = name[len(prefix):] if prefix and name.startswith(prefix) else name
        relative = relative.lstrip("/")
        return open(os.path.join(directory, *relative.split("/")), "rb")

    return hash_files(files, opener)


def hash_mod_file(path):
    """Hash a module file both directly and in the synthesized ``h1:`` form."""
    with open(path, "rb") as stream:
        raw = hashlib.sha256(stream.read()).digest()
    final = hashlib.sha256(f"{raw.hex()}  {_MOD_FILE_NAME}\n".encode("utf-8")).digest()
    encoded_final = base64_encode(final)
    return ModHash(
        hash=raw.hex(),
        hash_base64=base64_encode(raw),
        hash_synthesized=final.hex(),
        hash_synthesized_base64=encoded_final,
        checksum="h1:" + encoded_final,
    )