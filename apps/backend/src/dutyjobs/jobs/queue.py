"""Priority-ordered queue of pending job ids."""

from __future__ import annotations

from collections.abc import Callable, Iterator

from dutyjobs.jobs.models import JobPriority

PriorityLookup = Callable[[str], JobPriority | None]


class PriorityJobQueue:
    """Pending job ids ordered by priority tier, FIFO within a tier.

    Queue depth is bounded by the submission rate, so insertion and removal
    are plain list scans.
    """

    def __init__(self, priority_of: PriorityLookup) -> None:
        self._ids: list[str] = []
        self._priority_of = priority_of

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def push(self, job_id: str) -> None:
        """Insert ``job_id`` before the first job of a strictly lower tier."""
        priority = self._priority_of(job_id)
        if priority is None:
            return
        self.remove(job_id)

        for index, queued_id in enumerate(self._ids):
            queued = self._priority_of(queued_id)
            if queued is not None and queued.rank > priority.rank:
                self._ids.insert(index, job_id)
                return
        self._ids.append(job_id)

    def pop(self) -> str | None:
        """Remove and return the head of the queue."""
        if not self._ids:
            return None
        return self._ids.pop(0)

    def remove(self, job_id: str) -> bool:
        try:
            self._ids.remove(job_id)
        except ValueError:
            return False
        return True

    def peek(self) -> str | None:
        return self._ids[0] if self._ids else None

    def clear(self) -> None:
        self._ids.clear()
