"""
Pure list transforms applied between a fetch and a commit.

Each function takes a TodoList and returns a new one. None of them
touch the network, and none of them treat an unknown task id as an
error: the id is logged and skipped.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, Optional

from .models import Task, TodoList

logger = logging.getLogger("nostrtodo.mutations")


def unmatched_ids(todolist: TodoList, ids: Iterable[str]) -> list[str]:
    """Return the ids in ``ids`` that no task in ``todolist`` carries."""
    present = todolist.ids
    missing: list[str] = []
    for task_id in ids:
        if task_id not in present and task_id not in missing:
            missing.append(task_id)
    return missing


def _log_unmatched(todolist: TodoList, ids: Iterable[str]) -> None:
    for task_id in unmatched_ids(todolist, ids):
        logger.info("No task with id %s", task_id)


def new_task_id(existing: set[str]) -> str:
    """Generate a task id not already in ``existing``."""
    while True:
        candidate = str(uuid.uuid4())
        if candidate not in existing:
            return candidate


def add_task(
    todolist: TodoList,
    content: str,
    *,
    now: Optional[int] = None,
    task_id: Optional[str] = None,
) -> TodoList:
    """Append a new pending task and re-sort.

    Args:
        todolist: Current list.
        content: Task text.
        now: Creation time in unix seconds. Defaults to the current time.
        task_id: Explicit id. Must not collide with an existing one.

    Returns:
        TodoList: The list with one more task.

    Raises:
        ValueError: If ``task_id`` is already used in the list.
    """
    existing = todolist.ids
    if task_id is None:
        task_id = new_task_id(existing)
    elif task_id in existing:
        raise ValueError(f"task id already in use: {task_id}")

    task = Task(
        id=task_id,
        content=content,
        done=False,
        created_at=int(time.time()) if now is None else now,
    )
    return TodoList(tasks=todolist.tasks + (task,)).ordered()


def _set_done(todolist: TodoList, ids: Iterable[str], done: bool) -> TodoList:
    targets = set(ids)
    _log_unmatched(todolist, targets)
    return TodoList(
        tasks=tuple(
            t.model_copy(update={"done": done}) if t.id in targets else t
            for t in todolist.tasks
        )
    )


def mark_done(todolist: TodoList, ids: Iterable[str]) -> TodoList:
    """Mark every task whose id is in ``ids`` as done."""
    return _set_done(todolist, ids, True)


def mark_undone(todolist: TodoList, ids: Iterable[str]) -> TodoList:
    """Mark every task whose id is in ``ids`` as pending again."""
    return _set_done(todolist, ids, False)


def edit_task(todolist: TodoList, task_id: str, content: str) -> TodoList:
    """Replace the content of the task with ``task_id``.

    An id that matches nothing leaves the list as it was.
    """
    _log_unmatched(todolist, [task_id])
    return TodoList(
        tasks=tuple(
            t.model_copy(update={"content": content}) if t.id == task_id else t
            for t in todolist.tasks
        )
    )


def delete_tasks(todolist: TodoList, ids: Iterable[str]) -> TodoList:
    """Remove every task whose id is in ``ids``.

    Tasks with an empty id are swept out as well, on every call,
    whatever ``ids`` contains.
    """
    targets = set(ids)
    _log_unmatched(todolist, targets - {""})
    return TodoList(
        tasks=tuple(t for t in todolist.tasks if t.id != "" and t.id not in targets)
    )
