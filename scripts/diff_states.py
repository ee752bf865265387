#!/usr/bin/env python3
"""Compare two state snapshot files and show the plan between them.

Usage
-----
    python scripts/diff_states.py old-state.json new-state.json
    python scripts/diff_states.py --fields old-state.json new-state.json

With ``--fields`` every modified element is followed by what changed in
it: fields added, removed or redefined on a type, and value paths on an
instance.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from pyblueprint.core.element_diff import Difference, element_differences
from pyblueprint.core.planner import get_plan
from pyblueprint.models.elem_id import ElemID
from pyblueprint.models.elements import Element
from pyblueprint.models.plan import PlanAction
from pyblueprint.state.backends import FileStateBackend

MAX_VAL_WIDTH = 60


def _shorten(value: object) -> str:
    text = repr(value) if not isinstance(value, str) else value
    return text if len(text) <= MAX_VAL_WIDTH else text[: MAX_VAL_WIDTH - 3] + "..."


def _print_differences(differences: list[Difference]) -> None:
    width = max(len(difference.location) for difference in differences)
    for difference in differences:
        print(f"      {difference.location:<{width}}  {_shorten(difference.before)} -> {_shorten(difference.after)}")


async def _load(path: Path) -> dict[ElemID, Element]:
    elements = await FileStateBackend(path).load()
    return {element.elem_id: element for element in elements}


def main() -> None:
    parser = argparse.ArgumentParser(description="Show the plan between two state snapshots.")
    parser.add_argument("old", help="Older state file")
    parser.add_argument("new", help="Newer state file")
    parser.add_argument("--fields", action="store_true", help="Show what changed inside modified elements")
    args = parser.parse_args()

    file_old, file_new = Path(args.old), Path(args.new)

    print(f"Old: {file_old.name}")
    print(f"New: {file_new.name}")
    print()

    old = asyncio.run(_load(file_old))
    new = asyncio.run(_load(file_new))
    plan = get_plan(old, new)

    if plan.is_empty:
        print("No differences found.")
        return

    print(plan.describe())
    if args.fields:
        for item in plan:
            if item.action is not PlanAction.MODIFY or item.before is None or item.after is None:
                continue
            print(f"\n  {item.elem_id.full_name}:")
            _print_differences(element_differences(item.before, item.after))

    print(f"\n{len(plan)} change(s) found.")


if __name__ == "__main__":
    main()
