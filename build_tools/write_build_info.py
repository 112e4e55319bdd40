"""Write pagewright/_build_info.py by hand (same output as the build hook)."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path


def _git(args: list[str], cwd: Path) -> str | None:
    try:
        out = subprocess.check_output(["git", *args], cwd=str(cwd),
                                      stderr=subprocess.DEVNULL)
    except (subprocess.CalledProcessError, OSError):
        return None
    return out.decode().strip() or None


def main() -> int:
    root = Path(__file__).resolve().parents[1]
    target = root / "pagewright" / "_build_info.py"
    commit = _git(["rev-parse", "HEAD"], root)
    date = _git(["show", "-s", "--format=%cI", "HEAD"], root)
    target.write_text(
        "# Generated by build_tools/write_build_info.py.\n"
        f"COMMIT = {commit!r}\n"
        f"DATE = {date!r}\n",
        encoding="utf-8",
    )
    print(f"wrote {target.relative_to(root)} (commit {commit or 'unknown'})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
