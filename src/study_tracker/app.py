"""Interactive CLI application."""
import asyncio
import logging
from dataclasses import fields
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, IntPrompt, Prompt
from rich.table import Table
from rich.tree import Tree

from study_tracker.classifier import classify
from study_tracker.config import EngineConfig, load_config, save_config_value
from study_tracker.coordinator import OptimisticCoordinator
from study_tracker.courses import filter_courses, load_courses, with_derived_fields
from study_tracker.dashboard import get_dashboard_stats, get_progress_color, get_progress_label
from study_tracker.db import DEFAULT_DB_PATH, AsyncStore, SqliteStore, init_db
from study_tracker.errors import MutationError, StudyTrackerError
from study_tracker.hierarchy import TopicHierarchy, filter_topics
from study_tracker.models import COMPLETED, IN_PROGRESS, NOT_STARTED, STATUSES, Course, Topic
from study_tracker.notifications import filter_unread, generate_notifications
from study_tracker.progress import display_progress, status_counts, weight

console = Console()

STATUS_STYLE = {
    NOT_STARTED: "[dim]Pending[/dim]",
    IN_PROGRESS: "[yellow]in progress[/yellow]",
    COMPLETED: "[green]completed[/green]",
}


def show_welcome():
    console.print(Panel(
        "[bold]Study Tracker[/bold]\n[dim]Courses, topics and exam countdowns[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("courses", "List courses"),
        ("course", "Topics of one course"),
        ("add-course", "Add a course"),
        ("add-topic", "Add a topic or sub-topic"),
        ("toggle", "Advance a topic's status"),
        ("edit", "Edit a topic"),
        ("log", "Log a study session"),
        ("delete", "Delete a topic"),
        ("delete-course", "Delete a course and its topics"),
        ("alerts", "Notifications"),
        ("read", "Mark all notifications read"),
        ("dashboard", "Overall progress"),
        ("settings", "Alert thresholds"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def progress_bar(progress: float) -> str:
    color = get_progress_color(progress)
    filled = int(progress / 5)
    return f"[{color}]{'█' * filled}{'░' * (20 - filled)}[/{color}]"


def choose_course(courses: list[Course]) -> Course | None:
    if not courses:
        console.print("[yellow]No courses yet. Use 'add-course' first.[/yellow]")
        return None
    for i, c in enumerate(courses, 1):
        console.print(f"  [cyan]{i}[/cyan]) {c.code} {c.name}")
    index = IntPrompt.ask("Select course", choices=[str(i) for i in range(1, len(courses) + 1)])
    return courses[index - 1]


def ordered_topics(topics: list[Topic]) -> list[Topic]:
    """Main topics each followed by their sub-topics, the order they are shown in."""
    ordered = []
    for main, subs in TopicHierarchy(topics):
        ordered.append(main)
        ordered.extend(subs)
    return ordered


def choose_topic(topics: list[Topic]) -> Topic | None:
    if not topics:
        console.print("[yellow]This course has no topics.[/yellow]")
        return None
    ordered = ordered_topics(topics)
    for i, t in enumerate(ordered, 1):
        indent = "    " if t.parent_topic_id else ""
        console.print(f"  {indent}[cyan]{i}[/cyan]) {t.name}")
    index = IntPrompt.ask("Select topic", choices=[str(i) for i in range(1, len(ordered) + 1)])
    return ordered[index - 1]


def cmd_courses(store: SqliteStore, config: EngineConfig):
    now = datetime.now()
    courses = load_courses(store, now, config)
    if not courses:
        console.print("[yellow]No courses yet.[/yellow]")
        return
    query = Prompt.ask("Search courses (Enter for all)", default="")
    if query:
        courses = filter_courses(courses, query)
        if not courses:
            console.print(f"[yellow]No courses match '{query}'.[/yellow]")
            return
    table = Table(title="Courses")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    table.add_column("Progress")
    table.add_column("Hours", justify="right")
    table.add_column("Exam")
    for c in courses:
        signals = classify(c, now, store.last_activity(c.id) or now, config)
        exam = c.exam_date.strftime("%Y-%m-%d")
        if signals.days_until_exam > 0:
            exam += f" ({signals.days_until_exam}d)"
        name = c.name + (" [red](neglected)[/red]" if c.is_neglected else "")
        table.add_row(
            c.code, name,
            f"{progress_bar(c.progress)} {display_progress(c.progress)}%",
            f"{c.total_hours:g}h", exam,
        )
    console.print(table)


def cmd_course(store: SqliteStore, config: EngineConfig):
    course = choose_course(store.list_courses())
    if course is None:
        return
    all_topics = store.list_topics(course.id)
    topics = all_topics
    query = Prompt.ask("Filter topics (Enter for all)", default="")
    if query:
        kept = {t.id for t in filter_topics(all_topics, query)}
        # Parents of matching sub-topics stay so the tree remains well-formed
        kept |= {t.parent_topic_id for t in all_topics if t.id in kept and t.parent_topic_id}
        topics = [t for t in all_topics if t.id in kept]
    course = with_derived_fields(
        course, all_topics, datetime.now(), store.last_activity(course.id), config,
    )
    topic_weight = weight(course.topic_count)
    tree = Tree(f"[bold]{course.code}[/bold] {course.name} - {display_progress(course.progress)}%")
    for main, subs in TopicHierarchy(topics):
        branch = tree.add(f"{main.name}  {STATUS_STYLE[main.status]}  {main.hours_spent:g}h  [dim]{topic_weight}%[/dim]")
        for sub in subs:
            branch.add(f"{sub.name}  {STATUS_STYLE[sub.status]}  {sub.hours_spent:g}h  [dim]{topic_weight}%[/dim]")
    console.print(tree)
    counts = status_counts(all_topics)
    console.print(
        f"\n  Completed: [green]{counts[COMPLETED]}[/green]  |  "
        f"In progress: [yellow]{counts[IN_PROGRESS]}[/yellow]  |  "
        f"Total hours: [bold]{course.total_hours:g}h[/bold]"
    )


def cmd_add_course(store: SqliteStore):
    name = Prompt.ask("Course name")
    code = Prompt.ask("Course code")
    raw = Prompt.ask("Exam date (YYYY-MM-DD or YYYY-MM-DDTHH:MM)")
    try:
        exam_date = datetime.fromisoformat(raw)
    except ValueError:
        console.print(f"[red]Not a date: {raw}[/red]")
        return
    store.create_course(name, code, exam_date)
    console.print(f"[green]Added {code}.[/green]")


def cmd_add_topic(store: SqliteStore):
    course = choose_course(store.list_courses())
    if course is None:
        return
    parent_id = None
    mains = [t for t in store.list_topics(course.id) if t.is_main]
    if mains and Confirm.ask("Is this a sub-topic?", default=False):
        for i, t in enumerate(mains, 1):
            console.print(f"  [cyan]{i}[/cyan]) {t.name}")
        index = IntPrompt.ask("Parent topic", choices=[str(i) for i in range(1, len(mains) + 1)])
        parent_id = mains[index - 1].id
    name = Prompt.ask("Topic name")
    store.create_topic(course.id, name, parent_topic_id=parent_id)
    console.print(f"[green]Added {name}.[/green]")


async def _load(coordinator: OptimisticCoordinator, store: SqliteStore):
    course = choose_course(store.list_courses())
    if course is None:
        return None, None
    topics = await coordinator.refresh(course.id)
    topic = choose_topic(topics)
    return course, topic


async def cmd_toggle(coordinator: OptimisticCoordinator, store: SqliteStore):
    course, topic = await _load(coordinator, store)
    if topic is None:
        return
    updated = await coordinator.toggle_status(course.id, topic.id)
    summary = coordinator.summary(course.id)
    console.print(f"{updated.name}: {STATUS_STYLE[updated.status]}  (course at {summary.display_progress}%)")


async def cmd_log(coordinator: OptimisticCoordinator, store: SqliteStore, config: EngineConfig):
    course, topic = await _load(coordinator, store)
    if topic is None:
        return
    minutes = IntPrompt.ask("Minutes studied", default=config.pomodoro_minutes)
    updated = await coordinator.log_minutes(course.id, topic.id, minutes)
    console.print(f"[green]{updated.name}: {updated.hours_spent:g}h spent[/green]")


async def cmd_edit(coordinator: OptimisticCoordinator, store: SqliteStore):
    course, topic = await _load(coordinator, store)
    if topic is None:
        return
    name = Prompt.ask("Topic name", default=topic.name)
    hours = FloatPrompt.ask("Hours spent", default=topic.hours_spent)
    status = Prompt.ask("Status", choices=list(STATUSES), default=topic.status)
    # Only fields that actually changed are sent
    changes = {
        key: value
        for key, value in (("name", name), ("hours_spent", hours), ("status", status))
        if value != getattr(topic, key)
    }
    if not changes:
        console.print("[dim]Nothing changed.[/dim]")
        return
    updated = await coordinator.apply_optimistic(course.id, topic.id, changes)
    summary = coordinator.summary(course.id)
    console.print(f"[green]Saved {updated.name}.[/green]  (course at {summary.display_progress}%)")


async def cmd_delete(coordinator: OptimisticCoordinator, store: SqliteStore):
    course, topic = await _load(coordinator, store)
    if topic is None:
        return
    if Confirm.ask(f"Delete '{topic.name}' and its sub-topics?", default=False):
        await coordinator.delete_topic(course.id, topic.id)
        console.print("[green]Deleted.[/green]")


def cmd_delete_course(store: SqliteStore):
    course = choose_course(store.list_courses())
    if course is None:
        return
    if Confirm.ask(f"Delete {course.code} and all of its topics?", default=False):
        store.delete_course(course.id)
        console.print(f"[green]Deleted {course.code}.[/green]")


def cmd_settings(db_path: str, config: EngineConfig) -> EngineConfig:
    table = Table(title="Settings")
    table.add_column("Name", style="cyan")
    table.add_column("Value", justify="right")
    for f in fields(EngineConfig):
        table.add_row(f.name, f"{getattr(config, f.name):g}")
    console.print(table)
    name = Prompt.ask(
        "Setting to change (Enter to keep all)",
        choices=[f.name for f in fields(EngineConfig)] + [""], default="", show_choices=False,
    )
    if not name:
        return config
    value = FloatPrompt.ask("New value", default=float(getattr(config, name)))
    if value < 0:
        console.print("[red]Settings cannot be negative.[/red]")
        return config
    current = getattr(config, name)
    save_config_value(db_path, name, type(current)(value))
    console.print(f"[green]{name} set to {type(current)(value):g}.[/green]")
    return load_config(db_path)


def cmd_alerts(store: SqliteStore, config: EngineConfig):
    notifications = generate_notifications(load_courses(store, datetime.now(), config), datetime.now(), config)
    unread = filter_unread(notifications, store.read_ids())
    if not unread:
        console.print("[dim]No notifications yet[/dim]")
        return
    for n in unread:
        style = "red" if n.urgent else "yellow"
        console.print(Panel(n.description, title=n.title, border_style=style))


def cmd_read(store: SqliteStore, config: EngineConfig):
    now = datetime.now()
    notifications = generate_notifications(load_courses(store, now, config), now, config)
    store.mark_read([n.id for n in notifications], now)
    console.print(f"[dim]Marked {len(notifications)} notification(s) read.[/dim]")


def cmd_dashboard(store: SqliteStore, config: EngineConfig):
    courses = load_courses(store, datetime.now(), config)
    stats = get_dashboard_stats(courses)
    console.print(Panel(
        f"Active Courses: [bold]{stats['active_courses']}[/bold]  |  "
        f"Completion Rate: [bold]{stats['completion_rate']}%[/bold]  |  "
        f"Study Time: [bold]{stats['total_hours']:g}h[/bold]",
        title="Dashboard", border_style="blue",
    ))
    for c in courses:
        label = get_progress_label(c.progress)
        color = get_progress_color(c.progress)
        console.print(f"  {c.code:<10} {progress_bar(c.progress)} [{color}]{label}[/{color}]")
    if stats["neglected_courses"]:
        console.print(f"\n  [yellow]{stats['neglected_courses']} course(s) need attention.[/yellow]")


async def run(db_path: str):
    init_db(db_path)
    store = SqliteStore(db_path)
    config = load_config(db_path)
    coordinator = OptimisticCoordinator(AsyncStore(store))

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="courses").strip().lower()
        try:
            if choice == "courses":
                cmd_courses(store, config)
            elif choice == "course":
                cmd_course(store, config)
            elif choice == "add-course":
                cmd_add_course(store)
            elif choice == "add-topic":
                cmd_add_topic(store)
            elif choice == "toggle":
                await cmd_toggle(coordinator, store)
            elif choice == "edit":
                await cmd_edit(coordinator, store)
            elif choice == "log":
                await cmd_log(coordinator, store, config)
            elif choice == "delete":
                await cmd_delete(coordinator, store)
            elif choice == "delete-course":
                cmd_delete_course(store)
            elif choice == "alerts":
                cmd_alerts(store, config)
            elif choice == "read":
                cmd_read(store, config)
            elif choice == "dashboard":
                cmd_dashboard(store, config)
            elif choice == "settings":
                config = cmd_settings(db_path, config)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck on your exams![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except MutationError as e:
            console.print(f"[red]{e.user_message}[/red]")
        except StudyTrackerError as e:
            console.print(f"[red]Error: {e}[/red]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


def main():
    logging.basicConfig(
        level=logging.WARNING, format="%(message)s", handlers=[RichHandler(console=console)],
    )
    asyncio.run(run(DEFAULT_DB_PATH))


if __name__ == "__main__":
    main()
