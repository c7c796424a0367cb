"""Todo commands: list, new, done, undone, edit, delete, version."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import click
from rich.markup import escape

from .. import __version__
from ..models import TodoList
from ..mutations import (
    add_task,
    delete_tasks,
    edit_task,
    mark_done,
    mark_undone,
    unmatched_ids,
)
from ..sync import CommitReport
from ._common import build_engine, console, note_unmatched, report_commit, run

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"
DONE_MARK = "✅"
PENDING_MARK = "　"

name_option = click.option(
    "-n", "--name", default="", help="List name (default list when empty)."
)


def format_task_line(task_id: str, created_at: int, done: bool, content: str) -> str:
    """Rich markup for one line of ``list`` output."""
    try:
        stamp = datetime.fromtimestamp(created_at).strftime(TIMESTAMP_FORMAT)
    except (OverflowError, OSError, ValueError):
        # Outside what the platform clock can render; show the raw seconds.
        stamp = str(created_at)
    mark = DONE_MARK if done else PENDING_MARK
    return f"[green]{escape(task_id)}[/] ([blue]{stamp}[/]): {mark} {escape(content)}"


def _commit_with_ids(
    ctx: click.Context,
    name: str,
    ids: tuple[str, ...],
    mutate: Callable[[TodoList], TodoList],
) -> CommitReport:
    """Fetch, apply ``mutate``, commit, and note ids that matched nothing."""
    engine = build_engine(ctx)
    missing: list[str] = []

    def _apply(todolist: TodoList) -> TodoList:
        missing.extend(unmatched_ids(todolist, ids))
        return mutate(todolist)

    _, report = run(engine.apply(_apply, name))
    note_unmatched(missing)
    return report


def register_todo_commands(main: click.Group) -> None:
    """Register the todo list commands."""

    @main.command("list")
    @name_option
    @click.option("-a", "show_all", is_flag=True, help="list all todos")
    @click.pass_context
    def list_cmd(ctx, name, show_all):
        """list todos"""
        engine = build_engine(ctx)
        todolist = run(engine.load(name))
        for task in todolist.tasks:
            if task.done and not show_all:
                continue
            console.print(
                format_task_line(task.id, task.created_at, task.done, task.content),
                highlight=False,
            )

    @main.command("new")
    @name_option
    @click.option("--content", required=True, help="content")
    @click.pass_context
    def new_cmd(ctx, name, content):
        """new todo"""
        engine = build_engine(ctx)
        added: list[str] = []

        def _add(todolist: TodoList) -> TodoList:
            updated = add_task(todolist, content)
            added.extend(updated.ids - todolist.ids)
            return updated

        _, report = run(engine.apply(_add, name, allow_missing=True))
        report_commit(report)
        for task_id in added:
            console.print(f"[green]Added[/] {escape(task_id)}", highlight=False)

    @main.command("done")
    @name_option
    @click.argument("ids", nargs=-1, required=True)
    @click.pass_context
    def done_cmd(ctx, name, ids):
        """done todo"""
        report = _commit_with_ids(ctx, name, ids, lambda tl: mark_done(tl, ids))
        report_commit(report)

    @main.command("undone")
    @name_option
    @click.argument("ids", nargs=-1, required=True)
    @click.pass_context
    def undone_cmd(ctx, name, ids):
        """undone todo"""
        report = _commit_with_ids(ctx, name, ids, lambda tl: mark_undone(tl, ids))
        report_commit(report)

    @main.command("edit")
    @name_option
    @click.option("--content", required=True, help="new content")
    @click.argument("task_id", metavar="ID")
    @click.pass_context
    def edit_cmd(ctx, name, content, task_id):
        """edit todo"""
        report = _commit_with_ids(
            ctx, name, (task_id,), lambda tl: edit_task(tl, task_id, content)
        )
        report_commit(report)

    @main.command("delete")
    @name_option
    @click.argument("ids", nargs=-1, required=True)
    @click.pass_context
    def delete_cmd(ctx, name, ids):
        """delete todo"""
        report = _commit_with_ids(ctx, name, ids, lambda tl: delete_tasks(tl, ids))
        report_commit(report)

    @main.command("version")
    def version_cmd():
        """show version"""
        click.echo(__version__)
