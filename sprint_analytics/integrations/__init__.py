"""
Sprint Analytics - Integrations

- Jira: work logs per issue
- Work-log sync: concurrent fetch for a batch of tasks
"""

from .jira import JiraClient, WorkLog, parse_worklog
from .worklog_sync import WorkLogSyncService, WorkLogSyncResult, sync_worklogs

__all__ = [
    # Jira
    "JiraClient",
    "WorkLog",
    "parse_worklog",

    # Work-log sync
    "WorkLogSyncService",
    "WorkLogSyncResult",
    "sync_worklogs",
]
