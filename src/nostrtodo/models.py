"""
Pydantic models for the task list and its wire body.

A TodoList is a value: it is rebuilt from a relay on every command,
changed once in memory, and replaced wholesale on commit. Nothing here
talks to the network.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import CorruptRecordError

NAMESPACE_PREFIX = "nostr-todo"


def namespace_key(name: str = "") -> str:
    """Map a list name to the ``d`` tag that addresses it on relays.

    Args:
        name: User-supplied list name. Empty selects the default list.

    Returns:
        str: ``nostr-todo`` for the default list, ``nostr-todo-<name>`` otherwise.
    """
    if not name:
        return NAMESPACE_PREFIX
    return f"{NAMESPACE_PREFIX}-{name}"


class Task(BaseModel):
    """One item on the list."""

    model_config = ConfigDict(frozen=True)

    # Strict fields: a "7" is not a timestamp and "yes" is not a bool.
    id: str = Field(default="", strict=True)
    content: str = Field(default="", strict=True)
    done: bool = Field(default=False, strict=True)
    created_at: int = Field(default=0, strict=True)


_TASKS = TypeAdapter(list[Task])


class TodoList(BaseModel):
    """An ordered sequence of tasks, ascending by ``created_at``."""

    model_config = ConfigDict(frozen=True)

    tasks: tuple[Task, ...] = Field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.tasks)

    @property
    def ids(self) -> set[str]:
        return {t.id for t in self.tasks}

    def get(self, task_id: str) -> Task | None:
        """Return the first task with ``task_id``, or None."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def ordered(self) -> TodoList:
        """Return a copy ordered by creation time (stable for ties)."""
        return TodoList(tasks=tuple(sorted(self.tasks, key=lambda t: t.created_at)))

    def serialize(self) -> str:
        """Deterministic JSON body: an array of task objects.

        Keys come out in declaration order (id, content, done, created_at)
        with compact separators, so equal lists always produce equal bytes.
        """
        payload = [task.model_dump() for task in self.tasks]
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def deserialize(cls, body: str) -> TodoList:
        """Parse a record body back into a sorted TodoList.

        Missing or ``null`` task fields fall back to their zero values and
        a ``null`` body reads as an empty list. Field types are not coerced.

        Raises:
            CorruptRecordError: If the body is not a JSON array of task
                objects, or holds text that cannot be written back as UTF-8.
        """
        try:
            data: Any = json.loads(body)
        except (TypeError, ValueError) as exc:
            raise CorruptRecordError(f"record body is not valid JSON: {exc}") from exc

        if data is None:
            return cls()
        if not isinstance(data, list):
            raise CorruptRecordError(
                f"record body must be a JSON array, got {type(data).__name__}"
            )
        try:
            tasks = _TASKS.validate_python([_drop_nulls(item) for item in data])
        except ValidationError as exc:
            raise CorruptRecordError(
                f"record body does not describe a todo list: {exc.error_count()} invalid field(s)"
            ) from exc

        todolist = cls(tasks=tuple(tasks)).ordered()
        try:
            todolist.serialize().encode("utf-8")
        except UnicodeEncodeError as exc:
            raise CorruptRecordError("record body holds text that is not valid unicode") from exc
        return todolist


def _drop_nulls(item: Any) -> Any:
    """``null`` fields, and ``null`` entries, read as zero values."""
    if item is None:
        return {}
    if isinstance(item, dict):
        return {k: v for k, v in item.items() if v is not None}
    return item
