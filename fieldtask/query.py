"""
Retrieval, search and ordering of the technician's submitted tasks.

``TaskQuery`` fetches the full task list once and then works on it locally:
``filter`` narrows the view by organization name and ``sort`` orders it by
creation time. Neither touches the fetched set or goes back to the network.

Usage:

```python
query = TaskQuery(TaskListClient(config.tasks_url))
query.fetch_all(auth)          # newest first
query.filter('acme')
query.sort('oldest')
for task in query.view:
    print(task.organization_name, format_date(task.created_at))
```
"""

from __future__ import annotations

import datetime
import logging
from typing import List, Optional

from .models import SubmittedTask
from .session import AuthSession
from .sync.client import TaskListClient

NEWEST = 'newest'
OLDEST = 'oldest'
SORT_ORDERS = (NEWEST, OLDEST)


def format_date(value: Optional[datetime.datetime]) -> str:
    """Render a timestamp like ``May 1, 2024, 10:05 AM``; ``N/A`` when missing."""
    if value is None:
        return 'N/A'
    hour = value.strftime('%I:%M %p')
    return f'{value.strftime("%b")} {value.day}, {value.year}, {hour}'


class TaskQuery:
    """Holds one fetched task set and a filtered, sorted view of it."""

    def __init__(self, client: TaskListClient) -> None:
        self.client = client
        self._tasks: List[SubmittedTask] = []
        self._view: List[SubmittedTask] = []
        self.term = ''
        self.order = NEWEST
        self.logger = logging.getLogger(__name__)

    @property
    def tasks(self) -> List[SubmittedTask]:
        """The full fetched set, newest first."""
        return list(self._tasks)

    @property
    def view(self) -> List[SubmittedTask]:
        return list(self._view)

    @property
    def total(self) -> int:
        return len(self._tasks)

    def fetch_all(self, auth: AuthSession) -> List[SubmittedTask]:
        """Load every task of the technician and reset the view.

        Raises:
            NetworkError: if the backend could not be reached.
            ServerError: if the backend refused the request.
        """
        raw_tasks = self.client.fetch_tasks(auth)
        tasks = [SubmittedTask.from_json(t) for t in raw_tasks if isinstance(t, dict)]
        self._tasks = sorted(tasks, key=lambda t: t.sort_key, reverse=True)
        self.term = ''
        self.order = NEWEST
        self._view = list(self._tasks)
        return self.tasks

    def set_tasks(self, tasks: List[SubmittedTask]) -> None:
        """Replace the fetched set, for callers that obtained tasks elsewhere."""
        self._tasks = sorted(tasks, key=lambda t: t.sort_key, reverse=True)
        self.term = ''
        self.order = NEWEST
        self._view = list(self._tasks)

    def filter(self, term: str) -> List[SubmittedTask]:
        """Keep tasks whose organization name contains ``term``, ignoring case.

        A blank term shows the whole set. The active sort order is kept.
        """
        self.term = term
        if not term.strip():
            matched = list(self._tasks)
        else:
            needle = term.lower()
            matched = [t for t in self._tasks if needle in t.organization_name.lower()]
        self._view = self._ordered(matched, self.order)
        return self.view

    def clear_filter(self) -> List[SubmittedTask]:
        return self.filter('')

    def sort(self, order: str) -> List[SubmittedTask]:
        """Order the current view by creation time, ``newest`` or ``oldest``.

        Raises:
            ValueError: for any other order.
        """
        if order not in SORT_ORDERS:
            raise ValueError(f'Unknown sort order {order!r}; expected one of {SORT_ORDERS}')
        self.order = order
        self._view = self._ordered(self._view, order)
        return self.view

    def get(self, task_id: str) -> Optional[SubmittedTask]:
        for task in self._tasks:
            if task.task_id == task_id:
                return task
        return None

    def summary(self) -> str:
        shown = len(self._view)
        if shown != self.total:
            return f'Showing {shown} out of {self.total} tasks'
        return f'Showing {shown} tasks'

    @staticmethod
    def _ordered(tasks: List[SubmittedTask], order: str) -> List[SubmittedTask]:
        return sorted(tasks, key=lambda t: t.sort_key, reverse=(order == NEWEST))
