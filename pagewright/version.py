"""Version and build provenance for ``pagewright --version``."""

from __future__ import annotations

import importlib.metadata
import json
import subprocess
from pathlib import Path
from typing import NamedTuple, Optional

DISTRIBUTION = "pagewright"


class BuildInfo(NamedTuple):
    commit: Optional[str]
    date: Optional[str]
    dirty: bool


def _git(args: list[str], cwd: Path) -> Optional[str]:
    try:
        out = subprocess.check_output(["git", *args], cwd=str(cwd),
                                      stderr=subprocess.DEVNULL)
    except (subprocess.CalledProcessError, OSError):
        return None
    return out.decode().strip() or None


def _from_git_checkout() -> Optional[BuildInfo]:
    here = Path(__file__).resolve().parent
    root = _git(["rev-parse", "--show-toplevel"], here)
    if root is None:
        return None
    status = _git(["status", "--porcelain"], Path(root))
    return BuildInfo(
        commit=_git(["rev-parse", "HEAD"], Path(root)),
        date=_git(["show", "-s", "--format=%cI", "HEAD"], Path(root)),
        dirty=bool(status),
    )


def _from_build_file() -> Optional[BuildInfo]:
    # Written by the hatch build hook
    try:
        from . import _build_info  # type: ignore
    except ImportError:
        return None
    commit = getattr(_build_info, "COMMIT", None)
    date = getattr(_build_info, "DATE", None)
    if commit or date:
        return BuildInfo(commit=commit, date=date, dirty=False)
    return None


def _from_direct_url() -> Optional[BuildInfo]:
    # PEP 610: VCS installs record the commit in direct_url.json
    try:
        text = importlib.metadata.distribution(DISTRIBUTION).read_text("direct_url.json")
    except importlib.metadata.PackageNotFoundError:
        return None
    if not text:
        return None
    try:
        commit = (json.loads(text).get("vcs_info") or {}).get("commit_id")
    except (ValueError, AttributeError):
        return None
    return BuildInfo(commit=commit, date=None, dirty=False) if commit else None


def get_build_info() -> BuildInfo:
    for getter in (_from_git_checkout, _from_build_file, _from_direct_url):
        info = getter()
        if info and (info.commit or info.date):
            return info
    return BuildInfo(commit=None, date=None, dirty=False)


def get_package_version() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return "0+unknown"


def get_version_string() -> str:
    info = get_build_info()
    commit = info.commit[:7] if info.commit else "unknown"
    dirty = "-dirty" if info.dirty else ""
    return f"{DISTRIBUTION} {get_package_version()} ({commit}{dirty} {info.date or 'unknown'})"
