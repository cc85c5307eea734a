#!/usr/bin/env python3
"""Keep source and test modules below their line limits."""

from __future__ import annotations

from pathlib import Path
import sys

LIMITS = {"src": 400, "tests": 500}


def _line_count(path: Path) -> int:
    with path.open("r", encoding="utf-8", errors="ignore") as handle:
        return sum(1 for _ in handle)


def main(argv: list[str] | None = None) -> int:
    root = Path(argv[0] if argv else ".").resolve()
    offenders: list[tuple[str, int, int]] = []
    for top, limit in LIMITS.items():
        for path in sorted((root / top).rglob("*.py")):
            count = _line_count(path)
            if count > limit:
                offenders.append((str(path.relative_to(root)), count, limit))

    if offenders:
        print("error: modules over their line limit:")
        for relative, count, limit in offenders:
            print(f" - {relative} ({count} > {limit})")
        return 1

    print("module size check passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
