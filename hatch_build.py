"""Hatchling build hook that records the git commit in the package."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

from hatchling.builders.hooks.plugin.interface import BuildHookInterface

BUILD_INFO = "pagewright/_build_info.py"


class CustomBuildHook(BuildHookInterface):
    def initialize(self, version: str, build_data: dict[str, Any]) -> None:
        root = Path(self.root)
        commit = self._git(["rev-parse", "HEAD"], root)
        date = self._git(["show", "-s", "--format=%cI", "HEAD"], root)
        (root / BUILD_INFO).write_text(
            "# Generated by hatch_build.py.\n"
            f"COMMIT = {commit!r}\n"
            f"DATE = {date!r}\n",
            encoding="utf-8",
        )
        build_data.setdefault("artifacts", []).append(BUILD_INFO)

    def _git(self, args: list[str], cwd: Path) -> str | None:
        try:
            out = subprocess.check_output(["git", *args], cwd=str(cwd),
                                          stderr=subprocess.DEVNULL)
        except (subprocess.CalledProcessError, OSError):
            # No git checkout (sdist build): leave the fields empty
            return None
        return out.decode().strip() or None
