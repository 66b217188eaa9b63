"""
Work-log sync

Fans out Jira work-log fetches for a batch of tasks over a bounded pool of
asyncio workers and waits for all of them. A failing task is logged and
skipped; it never fails the batch and is not retried.
"""

import asyncio
import time
from dataclasses import dataclass, field

from ..logging import get_logger
from ..models import Task
from .jira import JiraClient, WorkLog

logger = get_logger(__name__)


@dataclass
class WorkLogSyncResult:
    """Work logs per task id, plus the ids of tasks whose fetch failed."""
    worklogs_by_task: dict[str, list[WorkLog]] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)
    duration_ms: float = 0

    @property
    def synced_count(self) -> int:
        return len(self.worklogs_by_task)

    @property
    def total_hours(self) -> float:
        return sum(w.time_spent_hours for logs in self.worklogs_by_task.values() for w in logs)

    def to_dict(self) -> dict:
        return {
            "synced": self.synced_count,
            "failed": list(self.failed),
            "total_hours": round(self.total_hours, 2),
            "duration_ms": round(self.duration_ms, 1),
            "worklogs": {
                task_id: [w.to_dict() for w in logs]
                for task_id, logs in self.worklogs_by_task.items()
            },
        }


class WorkLogSyncService:
    """
    Fetches work logs for many tasks concurrently.

    Usage:
        service = WorkLogSyncService(JiraClient(), max_workers=10)
        result = await service.sync(tasks)
    """

    def __init__(self, client: JiraClient, max_workers: int = 10, queue_capacity: int = 100):
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        if queue_capacity <= 0:
            raise ValueError("queue_capacity must be > 0")

        self.client = client
        self.max_workers = max_workers
        self.queue_capacity = queue_capacity

    @classmethod
    def from_config(cls, client: JiraClient, config) -> "WorkLogSyncService":
        """Pool sizes from an EngineConfig."""
        return cls(client, max_workers=config.worklog_max_workers, queue_capacity=config.worklog_queue_capacity)

    async def _sync_task(self, task: Task, result: WorkLogSyncResult):
        issue_key = task.display_key
        try:
            worklogs = await self.client.get_issue_worklogs(issue_key)
        except Exception as e:
            # Skip and keep going with the rest of the batch
            logger.warning("worklog_sync_failed", task=task.id, issue=issue_key, error=str(e))
            result.failed.append(task.id)
            return

        result.worklogs_by_task[task.id] = worklogs
        logger.debug("worklog_sync_task_done", task=task.id, issue=issue_key, count=len(worklogs))

    async def _worker(self, queue: asyncio.Queue, result: WorkLogSyncResult):
        while True:
            task = await queue.get()
            try:
                await self._sync_task(task, result)
            finally:
                queue.task_done()

    async def sync(self, tasks: list[Task]) -> WorkLogSyncResult:
        """Fetch work logs for every task and wait until all are processed."""
        started = time.monotonic()
        result = WorkLogSyncResult()
        logger.info("worklog_sync_started", tasks=len(tasks), workers=self.max_workers)

        queue = asyncio.Queue(maxsize=self.queue_capacity)
        workers = [
            asyncio.create_task(self._worker(queue, result))
            for _ in range(min(self.max_workers, max(1, len(tasks))))
        ]

        try:
            for task in tasks:
                await queue.put(task)
            await queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        result.duration_ms = (time.monotonic() - started) * 1000
        logger.info(
            "worklog_sync_completed",
            tasks=len(tasks),
            synced=result.synced_count,
            failed=len(result.failed),
            duration_ms=round(result.duration_ms, 1),
        )
        return result


# Convenience function
def sync_worklogs(
    client: JiraClient,
    tasks: list[Task],
    max_workers: int = 10,
    queue_capacity: int = 100
) -> WorkLogSyncResult:
    """
    Run a work-log sync to completion from synchronous code.

    Example:
        result = sync_worklogs(JiraClient(), tasks)
        print(result.failed)
    """
    return asyncio.run(WorkLogSyncService(client, max_workers=max_workers, queue_capacity=queue_capacity).sync(tasks))
