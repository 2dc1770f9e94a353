from __future__ import annotations

from typing import Iterable

from .models import Task


class TaskRegistry:
    """Tasks known to be running as of the last poll, keyed by task arn."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, arn: object) -> bool:
        return arn in self._tasks

    def get(self, arn: str) -> Task | None:
        return self._tasks.get(arn)

    def arns(self) -> set[str]:
        return set(self._tasks)

    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def sync(self, live: Iterable[Task]) -> tuple[list[str], list[str]]:
        """Make the registry match ``live`` exactly.

        Known arns keep their first cached view. Returns (added, removed).
        """
        live_arns: set[str] = set()
        added: list[str] = []
        for task in live:
            live_arns.add(task.arn)
            if task.arn not in self._tasks:
                self._tasks[task.arn] = task
                added.append(task.arn)

        removed = [arn for arn in self._tasks if arn not in live_arns]
        for arn in removed:
            del self._tasks[arn]
        return added, removed
