"""
Task store tool for plugintools.

This module provides the scheduler tool: an in-memory CRUD store of
schedulable tasks with a capacity ceiling.

Operations:
    - create: Add a pending task (bounded by max_tasks)
    - update: Overwrite the supplied fields of a task
    - delete: Remove a task
    - list:   Snapshot of every live task
    - get:    One task by id

Concurrency:
    The task map is guarded by one reader/writer lock. Mutations take
    exclusive access; list/get take shared access. Callers only ever see
    copies, so a read either fully precedes or fully follows a write.

Notifications:
    When enabled, create/update/delete hand a TaskEvent to the Notifier
    after the lock is released. Delivery is best-effort and can't fail or
    slow down the originating operation.

Tasks live only as long as the process.
"""

import logging
import time
from datetime import UTC, datetime, timedelta
from typing import Any

from plugintools.concurrency import RWLock
from plugintools.errors import (
    CapacityExceededError,
    InvalidDueTimeError,
    InvalidParameterError,
    InvalidStatusError,
    MissingParameterError,
    MissingTitleError,
    TaskNotFoundError,
)
from plugintools.notifications import Notifier, build_notifier
from plugintools.schema import (
    ParameterSpec,
    ParamType,
    SchedulerConfig,
    Task,
    TaskEvent,
    TaskEventType,
    TaskStatus,
    ToolDescriptor,
    utc_now,
)
from plugintools.tools.base import Tool, ToolContext, ToolOutput

logger = logging.getLogger(__name__)

OPERATIONS = ("create", "update", "delete", "list", "get")


def parse_due_time(value: str | datetime, tool: str = "") -> datetime:
    """
    Parse an RFC 3339 / ISO 8601 timestamp.

    Naive timestamps are taken to be UTC.

    Raises:
        InvalidDueTimeError: If the value can't be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError as e:
            raise InvalidDueTimeError(tool=tool, value=str(value)) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_status(value: str | TaskStatus, tool: str = "") -> TaskStatus:
    """
    Parse a task status string.

    Raises:
        InvalidStatusError: If the value is not a TaskStatus
    """
    try:
        return TaskStatus(value)
    except ValueError as e:
        raise InvalidStatusError(
            tool=tool,
            value=str(value),
            allowed=[status.value for status in TaskStatus],
        ) from e


class SchedulerTool(Tool):
    """
    Manage tasks and schedules.

    Arguments:
        operation (str): create, update, delete, list or get (required)
        task_id (str): Task id for update, delete and get
        title (str): Task title for create/update
        description (str): Task description for create/update
        due_time (str): Due time in RFC 3339 format
        status (str): pending, completed or cancelled (update only)

    Returns:
        create/update/get: The task as a dict
        list: List of task dicts
        delete: Confirmation dict
    """

    descriptor = ToolDescriptor(
        id="scheduler",
        name="Task Scheduler",
        description="Manage tasks and schedules",
        version="1.0.0",
        category="Productivity",
    )

    parameters = (
        ParameterSpec(
            name="operation",
            type=ParamType.STRING,
            required=True,
            description="Operation to perform (create, update, delete, list, get)",
        ),
        ParameterSpec(
            name="task_id",
            type=ParamType.STRING,
            description="Task ID for update, delete, get operations",
        ),
        ParameterSpec(
            name="title",
            type=ParamType.STRING,
            description="Task title for create/update operations",
        ),
        ParameterSpec(
            name="description",
            type=ParamType.STRING,
            description="Task description for create/update operations",
        ),
        ParameterSpec(
            name="due_time",
            type=ParamType.STRING,
            description="Task due time in RFC3339 format",
        ),
        ParameterSpec(
            name="status",
            type=ParamType.STRING,
            description="Task status (pending, completed, cancelled)",
        ),
    )

    def __init__(
        self,
        config: SchedulerConfig,
        notifier: Notifier | None = None,
    ) -> None:
        """
        Args:
            config: Scheduler section of the configuration
            notifier: Notifier to publish to; built from config when omitted
                      and notifications are enabled
        """
        self.config = config
        self._tasks: dict[str, Task] = {}
        self._lock = RWLock()
        self._last_id_ns = 0

        self.notifier: Notifier | None = None
        if config.enable_notifications:
            self.notifier = notifier or build_notifier(config)
            self.notifier.start()

    # =========================================================================
    # Tool interface
    # =========================================================================

    def execute(self, params: dict[str, Any], context: ToolContext) -> ToolOutput:
        operation = params["operation"]

        if operation == "create":
            task = self.create(
                params.get("title", ""),
                params.get("description", ""),
                params.get("due_time"),
            )
            data: Any = task.model_dump(mode="json")
        elif operation == "update":
            task = self.update(
                self._require_task_id(params, operation),
                title=params.get("title"),
                description=params.get("description"),
                due_time=params.get("due_time"),
                status=params.get("status"),
            )
            data = task.model_dump(mode="json")
        elif operation == "delete":
            data = self.delete(self._require_task_id(params, operation))
        elif operation == "list":
            data = [task.model_dump(mode="json") for task in self.list()]
        elif operation == "get":
            data = self.get(self._require_task_id(params, operation)).model_dump(mode="json")
        else:
            raise InvalidParameterError(
                tool=self.id,
                parameter="operation",
                reason=f"unsupported operation: {operation} (expected one of {', '.join(OPERATIONS)})",
            )

        return ToolOutput.ok(data, operation=operation)

    def _require_task_id(self, params: dict[str, Any], operation: str) -> str:
        task_id = params.get("task_id")
        if not task_id:
            raise MissingParameterError(
                tool=self.id,
                parameter="task_id",
                message=f"task_id is required for {operation} operation",
            )
        return task_id

    # =========================================================================
    # Store operations
    # =========================================================================

    def create(
        self,
        title: str,
        description: str = "",
        due_time: str | datetime | None = None,
    ) -> Task:
        """
        Create a pending task.

        Raises:
            CapacityExceededError: If max_tasks live tasks already exist
            MissingTitleError: If title is empty
            InvalidDueTimeError: If due_time can't be parsed
        """
        # Cheap rejection under shared access; re-checked below
        with self._lock.read():
            self._check_capacity()

        if not title:
            raise MissingTitleError(tool=self.id)

        due = parse_due_time(due_time, tool=self.id) if due_time else None

        with self._lock.write():
            self._check_capacity()
            now = utc_now()
            task = Task(
                id=self._next_id(),
                title=title,
                description=description or "",
                due_time=due,
                status=TaskStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            self._tasks[task.id] = task
            snapshot = task.model_copy()

        self._notify(TaskEventType.CREATED, snapshot)
        return snapshot

    def update(
        self,
        task_id: str,
        title: str | None = None,
        description: str | None = None,
        due_time: str | datetime | None = None,
        status: str | TaskStatus | None = None,
    ) -> Task:
        """
        Overwrite the supplied fields of a task.

        Empty or omitted fields are left untouched. Every supplied value is
        checked before any field is written, so a failed update changes
        nothing.

        Raises:
            TaskNotFoundError: If no task has this id
            InvalidDueTimeError: If due_time can't be parsed
            InvalidStatusError: If status is not a TaskStatus
        """
        with self._lock.write():
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id=task_id)

            new_due = parse_due_time(due_time, tool=self.id) if due_time else None
            new_status = parse_status(status, tool=self.id) if status else None

            if title:
                task.title = title
            if description:
                task.description = description
            if new_due is not None:
                task.due_time = new_due
            if new_status is not None:
                task.status = new_status

            now = utc_now()
            if now <= task.updated_at:
                now = task.updated_at + timedelta(microseconds=1)
            task.updated_at = now
            snapshot = task.model_copy()

        self._notify(TaskEventType.UPDATED, snapshot)
        return snapshot

    def delete(self, task_id: str) -> dict[str, Any]:
        """
        Remove a task.

        Raises:
            TaskNotFoundError: If no task has this id
        """
        with self._lock.write():
            task = self._tasks.pop(task_id, None)
            if task is None:
                raise TaskNotFoundError(task_id=task_id)

        self._notify(TaskEventType.DELETED, task)
        return {
            "success": True,
            "message": f"Task {task_id} deleted",
            "task_id": task_id,
        }

    def list(self) -> list[Task]:
        """Snapshot of all live tasks, unordered."""
        with self._lock.read():
            return [task.model_copy() for task in self._tasks.values()]

    def get(self, task_id: str) -> Task:
        """
        Copy of one task.

        Raises:
            TaskNotFoundError: If no task has this id
        """
        with self._lock.read():
            task = self._tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id=task_id)
            return task.model_copy()

    def __len__(self) -> int:
        """Number of live tasks."""
        with self._lock.read():
            return len(self._tasks)

    def close(self) -> None:
        """Stop the notifier worker, if one is running."""
        if self.notifier is not None:
            self.notifier.stop()

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_capacity(self) -> None:
        """Caller must hold the lock (shared or exclusive)."""
        if len(self._tasks) >= self.config.max_tasks:
            raise CapacityExceededError(limit=self.config.max_tasks)

    def _next_id(self) -> str:
        """Time-derived id, strictly increasing within the process.

        Caller must hold exclusive access.
        """
        now_ns = time.time_ns()
        if now_ns <= self._last_id_ns:
            now_ns = self._last_id_ns + 1
        self._last_id_ns = now_ns
        return f"task_{now_ns}"

    def _notify(self, event_type: TaskEventType, task: Task) -> None:
        """Publish an event. Must be called without holding the lock."""
        if self.notifier is None:
            return
        try:
            self.notifier.publish(TaskEvent(event=event_type, task=task))
        except Exception:
            logger.exception("Failed to publish %s for task %s", event_type.value, task.id)
