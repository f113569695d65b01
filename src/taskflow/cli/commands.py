# src/taskflow/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import cast

from ..core.models import Priority, Task, TaskStatus
from ..core.state import GroupDetailView
from ..sync.controller import TaskflowApp
from ..sync.projector import PRIORITY_ALL, StatusFilter, TaskFilter, compute_stats, parse_priority_filter
from ..sync.task_store import TaskDraft, TaskPatch

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[TaskflowApp, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[TaskflowApp, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        app: TaskflowApp,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(app, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(app, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting / parsing helpers ----


def short_id(value: str) -> str:
    return value[:8]


def format_task(task: Task, today: date | None = None) -> str:
    today = today or date.today()
    mark = "x" if task.completed else " "
    meta = [task.priority.value]
    if task.due_date:
        meta.append(f"due {task.due_date.isoformat()}")
    if task.status is TaskStatus.IN_PROGRESS:
        meta.append(task.status.value)
    line = f"[{mark}] {short_id(task.id)} {task.text} ({', '.join(meta)})"
    if task.is_overdue(today):
        line += " OVERDUE"
    return line


def parse_task_tokens(args: list[str]) -> tuple[str, Priority | None, date | None, bool]:
    """
    Split free text from inline options.

    ``!high`` sets the priority, ``due:2026-10-30`` the due date and
    ``due:none`` clears it.
    """
    words: list[str] = []
    priority: Priority | None = None
    due: date | None = None
    clear_due = False
    for tok in args:
        low = tok.lower()
        if low.startswith("!") and low[1:] in {p.value for p in Priority}:
            priority = Priority(low[1:])
        elif low.startswith("due:"):
            raw = tok[4:]
            if raw.lower() in ("none", "-", ""):
                clear_due = True
            else:
                due = date.fromisoformat(raw)
        else:
            words.append(tok)
    return " ".join(words), priority, due, clear_due


def _outcome(app: TaskflowApp, ok: str) -> str:
    return f"Error: {app.ui.error}" if app.ui.error else ok


def _need_login(app: TaskflowApp) -> str | None:
    if not app.session.authenticated:
        return "Not signed in. Use /login <email> <password> or /signup <email> <password>."
    return None


# ---- auth ----


async def cmd_help(app: TaskflowApp, args: list[str]) -> str:
    return registry.build_help()


async def cmd_login(app: TaskflowApp, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /login <email> <password>"
    if await app.sign_in(args[0], args[1]):
        return f"Signed in as {args[0]}." + (f" {app.ui.error}" if app.ui.error else "")
    return f"Sign-in failed: {app.session.error}"


async def cmd_signup(app: TaskflowApp, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /signup <email> <password>"
    if not await app.sign_up(args[0], args[1]):
        return f"Sign-up failed: {app.session.error}"
    if app.session.authenticated:
        return f"Account created. Signed in as {args[0]}."
    return "Account created. Confirm your email, then /login."


async def cmd_oauth(app: TaskflowApp, args: list[str]) -> str:
    if not args:
        return "Usage: /oauth google|facebook|github [redirect_url]"
    from ..config import get_settings

    redirect = args[1] if len(args) > 1 else get_settings().oauth_redirect_url
    url = app.oauth_url(args[0].lower(), redirect)
    if url is None:
        return f"OAuth sign-in unavailable: {app.session.error}"
    return f"Open this URL in a browser, then paste the final address with /callback <url>:\n  {url}"


async def cmd_callback(app: TaskflowApp, args: list[str]) -> str:
    if not args:
        return "Usage: /callback <redirected url>"
    if await app.complete_oauth(args[0]):
        ident = app.session.identity
        return f"Signed in as {ident.email if ident else '?'}."
    return f"Sign-in failed: {app.session.error}"


async def cmd_logout(app: TaskflowApp, args: list[str]) -> str:
    await app.sign_out()
    return "Signed out." if not app.session.error else f"Signed out locally ({app.session.error})."


async def cmd_whoami(app: TaskflowApp, args: list[str]) -> str:
    if not app.session.authenticated:
        return "Not signed in."
    p = app.profile
    name = p.display_name if p else app.session.user_id
    return f"{name} (id {app.session.user_id})"


# ---- tasks ----


async def cmd_add(app: TaskflowApp, args: list[str]) -> str:
    if (msg := _need_login(app)) is not None:
        return msg
    try:
        text, priority, due, _ = parse_task_tokens(args)
    except ValueError:
        return "Bad date. Use due:YYYY-MM-DD."
    task = await app.add_task(TaskDraft(text=text, priority=priority or Priority.MEDIUM, due_date=due))
    if task is None:
        return _outcome(app, "Nothing added (empty text).")
    return f"Added: {format_task(task)}"


async def cmd_list(app: TaskflowApp, args: list[str]) -> str:
    if (msg := _need_login(app)) is not None:
        return msg
    view = app.view()
    scope = "personal"
    if isinstance(app.ui.view, GroupDetailView) and app.groups.selected:
        scope = f"group {app.groups.selected.name}"
    lines = [f"Tasks ({scope}): showing {len(view.tasks)} of {view.stats.total}"]
    lines.extend(format_task(t) for t in view.tasks)
    if not view.tasks:
        lines.append("  (nothing here)")
    s = view.stats
    lines.append(f"Done {s.completed}/{s.total} ({s.completion_percent}%), overdue {len(s.overdue)}")
    return "\n".join(lines)


async def cmd_done(app: TaskflowApp, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task id>"
    task = await app.toggle_task(args[0])
    if task is None:
        return _outcome(app, "Nothing changed.")
    return f"{'Completed' if task.completed else 'Reopened'}: {format_task(task)}"


async def cmd_status(app: TaskflowApp, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /status <task id> pending|in-progress|completed"
    status = TaskStatus.from_db(args[1])
    if status is None:
        return "Status must be pending, in-progress or completed."
    task = await app.set_task_status(args[0], status)
    if task is None:
        return _outcome(app, "Nothing changed.")
    return f"Updated: {format_task(task)}"


async def cmd_edit(app: TaskflowApp, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /edit <task id> [new text] [!priority] [due:YYYY-MM-DD|due:none]"
    try:
        text, priority, due, clear_due = parse_task_tokens(args[1:])
    except ValueError:
        return "Bad date. Use due:YYYY-MM-DD."
    patch = TaskPatch(text=text or None, priority=priority, due_date=due, clear_due_date=clear_due)
    task = await app.edit_task(args[0], patch)
    if task is None:
        return _outcome(app, "Nothing changed.")
    return f"Updated: {format_task(task)}"


async def cmd_rm(app: TaskflowApp, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <task id>"
    ok = await app.delete_task(args[0])
    return _outcome(app, "Deleted." if ok else "Nothing deleted.")


async def cmd_find(app: TaskflowApp, args: list[str]) -> str:
    c = app.ui.criteria
    app.set_criteria(TaskFilter(search=" ".join(args), priority=c.priority, status=c.status))
    return await cmd_list(app, [])


async def cmd_filter(app: TaskflowApp, args: list[str]) -> str:
    """
    /filter priority low|medium|high|all
    /filter status all|active|completed|pending|in-progress
    /filter clear
    """
    c = app.ui.criteria
    if args and args[0].lower() == "clear":
        app.set_criteria(TaskFilter())
        return "Filters cleared."
    if len(args) < 2:
        prio = c.priority.value if c.priority else PRIORITY_ALL
        return (
            f"Current filter: search='{c.search}' priority={prio} status={c.status.value}\n"
            "Usage: /filter priority <low|medium|high|all> | /filter status <mode> | /filter clear"
        )
    kind, value = args[0].lower(), args[1]
    try:
        if kind == "priority":
            app.set_criteria(TaskFilter(search=c.search, priority=parse_priority_filter(value), status=c.status))
        elif kind == "status":
            app.set_criteria(TaskFilter(search=c.search, priority=c.priority, status=StatusFilter.parse(value)))
        else:
            return "Filter by priority or status."
    except ValueError:
        return f"Unknown {kind} value: {value}"
    return await cmd_list(app, [])


async def cmd_stats(app: TaskflowApp, args: list[str]) -> str:
    s = compute_stats(app.tasks.tasks)
    lines = [
        f"Total: {s.total}  Done: {s.completed}  Remaining: {s.active}  ({s.completion_percent}%)",
    ]
    for p in Priority:
        lines.append(f"  {p.value:<6} {s.completed_by_priority[p]}/{s.by_priority[p]} done")
    if s.overdue:
        lines.append("Overdue:")
        lines.extend(f"  {format_task(t)}" for t in s.overdue)
    return "\n".join(lines)


# ---- groups ----


async def cmd_groups(app: TaskflowApp, args: list[str]) -> str:
    if (msg := _need_login(app)) is not None:
        return msg
    await app.show_groups()
    if app.ui.error:
        return f"Error: {app.ui.error}"
    if not app.groups.groups:
        return "No groups yet. Create one with /group new <name> [description]."
    lines = ["Your groups:"]
    for g in app.groups.groups:
        desc = f" - {g.description}" if g.description else ""
        lines.append(f"  {short_id(g.id)} {g.name}{desc}")
    return "\n".join(lines)


async def cmd_group(app: TaskflowApp, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /group new <name> [| description]
    /group open <id>
    /group leave
    /group repair <id>
    """
    if (msg := _need_login(app)) is not None:
        return msg
    if not args:
        return "Usage: /group new <name> [| description] | open <id> | leave | repair <id>"
    sub, rest = args[0].lower(), args[1:]

    if sub == "new":
        name, _, description = " ".join(rest).partition("|")
        group = await app.create_group(name, description or None)
        if group is None:
            return _outcome(app, "Group name is required.")
        return f"Created group {group.name} ({short_id(group.id)}). Open it with /group open {short_id(group.id)}."

    if sub == "open":
        if not rest:
            return "Usage: /group open <id>"
        if emit:
            emit("Loading group...")
        if not await app.open_group(rest[0]):
            return f"Error: {app.ui.error}"
        g = app.groups.selected
        return f"Opened {g.name if g else '?'}: {len(app.tasks.tasks)} task(s), {len(app.groups.members)} member(s)."

    if sub == "leave":
        ok = await app.leave_group()
        return _outcome(app, "Left the group." if ok else "Not in a group.")

    if sub == "repair":
        if not rest:
            return "Usage: /group repair <full group id>"
        group = await app.repair_group(rest[0])
        return _outcome(app, f"Membership repaired for {group.name}." if group else "Nothing repaired.")

    return "Unknown /group subcommand."


async def cmd_personal(app: TaskflowApp, args: list[str]) -> str:
    await app.show_personal()
    return _outcome(app, f"Personal tasks: {len(app.tasks.tasks)}.")


async def cmd_members(app: TaskflowApp, args: list[str]) -> str:
    if app.groups.selected is None:
        return "Open a group first (/group open <id>)."
    lines = [f"Members of {app.groups.selected.name}:"]
    for m in app.groups.members:
        lines.append(f"  {short_id(m.user_id)} {m.display_name} ({m.role.value})")
    return "\n".join(lines)


async def cmd_invite(app: TaskflowApp, args: list[str]) -> str:
    if not args:
        return "Usage: /invite <email>"
    if app.groups.selected is None:
        return "Open a group first (/group open <id>)."
    membership = await app.add_member(args[0])
    return _outcome(app, f"Added {args[0]}." if membership else "Nothing added.")


async def cmd_kick(app: TaskflowApp, args: list[str]) -> str:
    if not args:
        return "Usage: /kick <user id>"
    ok = await app.remove_member(args[0])
    return _outcome(app, "Member removed." if ok else "Nothing removed.")


async def cmd_activity(app: TaskflowApp, args: list[str]) -> str:
    if app.groups.selected is None:
        return "Open a group first (/group open <id>)."
    names = {m.user_id: m.display_name for m in app.groups.members}
    lines = [f"Recent activity in {app.groups.selected.name}:"]
    for a in app.activity.feed:
        text = a.details.get("text", "")
        when = a.created_at.strftime("%Y-%m-%d %H:%M") if a.created_at else ""
        lines.append(f"  {when} {names.get(a.user_id, short_id(a.user_id))} {a.action} {text}".rstrip())
    if not app.activity.feed:
        lines.append("  (no activity yet)")
    return "\n".join(lines)


# ---- comments / notifications ----


async def cmd_comments(app: TaskflowApp, args: list[str]) -> str:
    if not args:
        return "Usage: /comments <task id>"
    comments = await app.load_comments(args[0])
    if comments is None:
        return _outcome(app, "No comments.")
    lines = [f"{len(comments)} comment(s):"]
    lines.extend(f"  {short_id(c.user_id)}: {c.content}" for c in comments)
    return "\n".join(lines)


async def cmd_comment(app: TaskflowApp, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /comment <task id> <text>"
    comment = await app.add_comment(args[0], " ".join(args[1:]))
    return _outcome(app, "Comment added." if comment else "Nothing added (empty comment).")


async def cmd_notifications(app: TaskflowApp, args: list[str]) -> str:
    if (msg := _need_login(app)) is not None:
        return msg
    await app.refresh_notifications()
    if app.ui.error:
        return f"Error: {app.ui.error}"
    tracker = app.notifications
    lines = [f"Notifications ({tracker.unread_count} unread):"]
    for n in tracker.notifications:
        flag = " " if n.read else "*"
        lines.append(f"  {flag} {short_id(n.id)} {n.title}: {n.message}")
    return "\n".join(lines)


async def cmd_read(app: TaskflowApp, args: list[str]) -> str:
    if not args:
        return "Usage: /read <notification id>|all"
    if args[0].lower() == "all":
        await app.mark_all_notifications_read()
    else:
        await app.mark_notification_read(args[0])
    return _outcome(app, f"{app.notifications.unread_count} unread left.")


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password>.")
registry.register("signup", cmd_signup, help_text="Create an account: /signup <email> <password>.")
registry.register("oauth", cmd_oauth, help_text="Sign in with a provider: /oauth google|facebook.")
registry.register("callback", cmd_callback, help_text="Finish OAuth sign-in: /callback <url>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in user.")
registry.register("add", cmd_add, help_text="Add a task: /add <text> [!high] [due:YYYY-MM-DD].", aliases=["a"])
registry.register("list", cmd_list, help_text="List tasks in the current scope.", aliases=["ls"])
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.")
registry.register("status", cmd_status, help_text="Set status: /status <id> pending|in-progress|completed.")
registry.register("edit", cmd_edit, help_text="Edit: /edit <id> [text] [!priority] [due:...].")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.")
registry.register("find", cmd_find, help_text="Search tasks: /find <text> (empty clears).")
registry.register("filter", cmd_filter, help_text="Filter: /filter priority|status <value> | clear.")
registry.register("stats", cmd_stats, help_text="Completion and priority stats.")
registry.register("groups", cmd_groups, help_text="List your groups.")
registry.register("group", cmd_group, help_text="Groups: /group new|open|leave|repair.")
registry.register("personal", cmd_personal, help_text="Back to personal tasks.")
registry.register("members", cmd_members, help_text="Members of the open group.")
registry.register("invite", cmd_invite, help_text="Add a member: /invite <email>.")
registry.register("kick", cmd_kick, help_text="Remove a member: /kick <user id>.")
registry.register("activity", cmd_activity, help_text="Recent activity of the open group.")
registry.register("comments", cmd_comments, help_text="Show comments: /comments <task id>.")
registry.register("comment", cmd_comment, help_text="Comment: /comment <task id> <text>.")
registry.register("notifications", cmd_notifications, help_text="Show notifications.", aliases=["n"])
registry.register("read", cmd_read, help_text="Mark read: /read <id>|all.")
