from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional, Union

from .errors import NotFoundError, ValidationError
from .models import TaskEntity, TaskStatus, UserEntity
from .repositories import TaskListQuery, TaskRepository, task_not_found

logger = logging.getLogger(__name__)


def _require_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Task title must not be empty")
    return title.strip()


class TaskService:
    """
    Task operations on behalf of an authenticated caller.

    Every store call passes caller["id"] as the owner, so a task that belongs
    to someone else behaves exactly like a task that does not exist.
    """

    def __init__(self, tasks: TaskRepository) -> None:
        self._tasks = tasks

    def create_task(self, title: str, description: str, caller: UserEntity) -> TaskEntity:
        task = self._tasks.insert(_require_title(title), description or "", caller["id"])
        logger.info('User "%s" created task %s', caller["username"], task["id"])
        return task

    def get_task_by_id(self, task_id: Optional[str], caller: UserEntity) -> TaskEntity:
        """
        Raises:
            NotFoundError: "Task ID is required" when task_id is empty, otherwise
            'Task with ID "<id>" not found' when no owned task matches.
        """
        if not task_id:
            raise NotFoundError("Task ID is required")
        task = self._tasks.find_one(task_id, caller["id"])
        if task is None:
            raise task_not_found(task_id)
        return task

    def get_tasks(self, query: Optional[TaskListQuery], caller: UserEntity) -> List[TaskEntity]:
        """
        Raises:
            ValidationError: if the status filter is not a TaskStatus value.
        """
        if query is not None and query.status is not None:
            try:
                status = TaskStatus(query.status)
            except ValueError as e:
                raise ValidationError(f'Invalid task status "{query.status}"') from e
            query = replace(query, status=status)
        logger.debug('User "%s" retrieving tasks', caller["username"])
        return self._tasks.query(caller["id"], query)

    def delete_task(self, task_id: Optional[str], caller: UserEntity) -> None:
        task = self.get_task_by_id(task_id, caller)
        self._tasks.delete(task["id"], caller["id"])
        logger.info('User "%s" deleted task %s', caller["username"], task["id"])

    def update_task_status(
        self, task_id: Optional[str], status: Union[TaskStatus, str], caller: UserEntity
    ) -> TaskEntity:
        """
        Set the task's status. Any status may follow any other.

        Raises:
            ValidationError: if status is not a TaskStatus value.
            NotFoundError: as for get_task_by_id.
        """
        try:
            new_status = TaskStatus(status)
        except ValueError as e:
            raise ValidationError(f'Invalid task status "{status}"') from e

        task = self.get_task_by_id(task_id, caller)
        task["status"] = new_status
        return self._tasks.update(task)

    def update_task(
        self,
        task_id: Optional[str],
        caller: UserEntity,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> TaskEntity:
        """Edit title and/or description; omitted fields keep their value."""
        task = self.get_task_by_id(task_id, caller)
        if title is not None:
            task["title"] = _require_title(title)
        if description is not None:
            task["description"] = description
        return self._tasks.update(task)
