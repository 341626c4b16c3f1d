"""
School Administration Console
=============================

ConsoleApp wires the services together and runs one parsed command at a
time, either straight from the command line or from the interactive shell.
Every SchoolAdminError ends up as a red message and exit code 1.
"""

import shlex
import time
from dataclasses import fields as dataclass_fields
from typing import Any, Callable, Dict, List, Optional

import httpx
from rich.console import Console
from rich.prompt import Confirm, Prompt
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.styles import Style as PTStyle
from prompt_toolkit.formatted_text import HTML

from schooladmin.access import Feature, require, visible_sections
from schooladmin.api import ApiClient
from schooladmin.config import ConsoleConfig
from schooladmin.dashboard import DashboardService
from schooladmin.exceptions import SchoolAdminError, ValidationError
from schooladmin.logging_config import logger
from schooladmin.models import StudentFilters, TeacherFilters
from schooladmin.preferences import ColumnPreferences
from schooladmin.renderer import Renderer
from schooladmin.session import SessionStore
from schooladmin.storage import FileStorage, MemoryStorage
from schooladmin.stores import (
    ClassStore,
    ResourceStore,
    SchoolStore,
    StudentStore,
    TeacherStore,
)
from schooladmin.transfer import RosterTransfer


PT_STYLE = PTStyle.from_dict({
    'prompt': '#06B6D4 bold',
    'input': '#E5E7EB',
})

# entity -> (read feature, write feature)
ENTITY_FEATURES = {
    "schools": (Feature.VIEW_SCHOOLS, Feature.MANAGE_SCHOOLS),
    "classes": (Feature.VIEW_CLASSES, Feature.MANAGE_CLASSES),
    "students": (Feature.VIEW_STUDENTS, Feature.MANAGE_STUDENTS),
    "teachers": (Feature.VIEW_TEACHERS, Feature.MANAGE_TEACHERS),
}

LIST_FILTERS = {
    "students": StudentFilters,
    "teachers": TeacherFilters,
}


def parse_fields(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Turn `key=value` arguments into a dict"""
    result: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValidationError(
                f"Expected key=value, got '{pair}'", fields={pair: "expected key=value"}
            )
        result[key.strip()] = value
    return result


def build_filters(entity: str, pairs: Optional[List[str]]) -> Any:
    values = parse_fields(pairs)
    if not values:
        return None
    filter_cls = LIST_FILTERS.get(entity)
    if filter_cls is None:
        raise ValidationError(f"{entity.capitalize()} cannot be filtered")
    allowed = {f.name for f in dataclass_fields(filter_cls)}
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise ValidationError(
            f"Unknown filter(s): {', '.join(unknown)}",
            fields={name: f"expected one of {', '.join(sorted(allowed))}" for name in unknown},
        )
    return filter_cls(**values)


class ConsoleApp:
    """
    Application root.

    Owns the API client, session, stores and services. Pass `storage`,
    `preferences_storage` or `transport` to run without touching disk or
    network.
    """

    def __init__(
        self,
        config: ConsoleConfig,
        console: Optional[Console] = None,
        storage: Optional[MemoryStorage] = None,
        preferences_storage: Optional[MemoryStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time
    ):
        self.config = config
        self.console = console or Console()

        self.api = ApiClient(config.api_base_url, timeout=config.timeout, transport=transport)
        self.session = SessionStore(
            self.api,
            storage if storage is not None else FileStorage(config.storage_path),
            clock=clock,
        )

        self.classes = ClassStore(self.session, self.api)
        self.students = StudentStore(self.session, self.api, self.classes)
        self.teachers = TeacherStore(self.session, self.api)
        self.schools = SchoolStore(self.session, self.api)
        self.stores: Dict[str, ResourceStore] = {
            "schools": self.schools,
            "classes": self.classes,
            "students": self.students,
            "teachers": self.teachers,
        }

        self.dashboard = DashboardService(
            self.session, self.api,
            self.students, self.teachers, self.classes, self.schools,
            summary_path=config.summary_path,
        )
        self.transfer = RosterTransfer(self.session, self.api, self.stores)
        self.preferences = ColumnPreferences(
            preferences_storage if preferences_storage is not None
            else FileStorage(config.preferences_path)
        )
        self.renderer = Renderer(self.preferences, page_size=config.page_size)

        self.session.subscribe(self._on_session_change)

    def _on_session_change(self, session: SessionStore) -> None:
        # cached rosters belong to whoever was signed in
        if not session.is_authenticated:
            for store in self.stores.values():
                if store.items:
                    store.reset()

    # ==================== Dispatch ====================

    async def run(self, args) -> int:
        """Run one parsed command; returns the process exit code"""
        handlers = {
            "login": self.cmd_login,
            "logout": self.cmd_logout,
            "status": self.cmd_status,
            "whoami": self.cmd_status,
            "dashboard": self.cmd_dashboard,
            "schools": self.cmd_entity,
            "classes": self.cmd_entity,
            "students": self.cmd_entity,
            "teachers": self.cmd_entity,
            "columns": self.cmd_columns,
            "shell": self.cmd_shell,
        }
        handler = handlers.get(args.command)
        if handler is None:
            self.console.print("[yellow]No command given. Try [cyan]schooladmin --help[/cyan][/yellow]")
            return 1

        try:
            await handler(args)
        except SchoolAdminError as e:
            logger.debug(f"{args.command} failed: {e.code} {e.message}")
            self.console.print(f"[red]✗ {e.message}[/red]")
            return 1
        return 0

    # ==================== Session commands ====================

    async def cmd_login(self, args) -> None:
        email = args.email or Prompt.ask("Login")
        password = args.password or Prompt.ask("Password", password=True)

        await self.session.login(email, password)

        self.console.print("\n[green]✓ Login successful![/green]")
        if self.session.school_name:
            self.console.print(f"Welcome, [bold]{self.session.school_name}[/bold]!")
        self.console.print(f"Sections: {self.renderer.navigation(visible_sections(self.session))}")

    async def cmd_logout(self, args) -> None:
        self.session.logout()
        self.console.print("[green]Logged out successfully[/green]")

    async def cmd_status(self, args) -> None:
        self.console.print(self.renderer.status_panel(self.session))
        if self.session.is_authenticated:
            self.console.print(f"Sections: {self.renderer.navigation(visible_sections(self.session))}")

    async def cmd_dashboard(self, args) -> None:
        summary = await self.dashboard.fetch()
        self.console.print(self.renderer.dashboard_panel(summary))

    # ==================== Entity commands ====================

    async def cmd_entity(self, args) -> None:
        entity = args.command
        action = getattr(args, "action", None) or "list"
        read_feature, write_feature = ENTITY_FEATURES[entity]
        store = self.stores[entity]

        if action == "list":
            require(self.session, read_feature)
            await self._list(entity, store, args)
        elif action == "add":
            require(self.session, write_feature)
            created = await store.create(parse_fields(args.fields))
            self.console.print(f"[green]✓ Added {store.entity_name} {created.id}[/green]")
            self._show_school_credentials(entity, created)
        elif action == "update":
            require(self.session, write_feature)
            updated = await store.update(args.id, parse_fields(args.fields))
            self.console.print(f"[green]✓ Updated {store.entity_name} {updated.id}[/green]")
        elif action == "delete":
            require(self.session, write_feature)
            if not args.yes and not Confirm.ask(f"Delete {store.entity_name} {args.id}?", default=False):
                self.console.print("[dim]Cancelled[/dim]")
                return
            await store.delete(args.id)
            self.console.print(f"[green]✓ Deleted {store.entity_name} {args.id}[/green]")
        elif action == "import":
            summary = await self.transfer.import_file(entity, args.path)
            self.console.print(f"[green]✓ {summary.describe(entity)}[/green]")
        elif action == "template":
            target = await self.transfer.download_template(entity, args.dest)
            self.console.print(f"[green]✓ Template saved to {target}[/green]")

    async def _list(self, entity: str, store: ResourceStore, args) -> None:
        filters = build_filters(entity, getattr(args, "filters", None))
        await store.list(filters)
        if store.error:
            self.console.print(f"[red]✗ {store.error}[/red]")

        page = getattr(args, "page", 1) or 1
        if entity == "students":
            table = self.renderer.students_table(self.students, page)
        elif entity == "teachers":
            self.teachers.set_search_text(getattr(args, "search", None))
            self.teachers.set_selected_subject(getattr(args, "subject", None))
            table = self.renderer.teachers_table(self.teachers.filtered(), page)
        elif entity == "classes":
            table = self.renderer.classes_table(self.classes.sorted_by_grade(), page)
        else:
            table = self.renderer.schools_table(self.schools.items, page)
        self.console.print(table)

    def _show_school_credentials(self, entity: str, created: Any) -> None:
        # the generated login is only ever shown once
        if entity == "schools" and created.user is not None:
            self.console.print(
                f"  Login: [bold]{created.email}[/bold]  Password: [bold]{created.password}[/bold]"
            )

    # ==================== Columns ====================

    async def cmd_columns(self, args) -> None:
        if args.action == "reset":
            self.preferences.reset(args.table)
        elif args.action in ("show", "hide"):
            if not args.column:
                raise ValidationError("Name the column to change", fields={"column": "required"})
            self.preferences.set_visible(args.table, args.column, args.action == "show")
        self.console.print(self.renderer.columns_table(self.preferences, args.table))

    # ==================== Interactive shell ====================

    async def cmd_shell(self, args) -> None:
        """Read commands until exit; each line is parsed like argv"""
        from schooladmin.main import create_parser

        parser = create_parser()
        prompt_session = PromptSession(
            history=FileHistory(self.config.history_path),
            style=PT_STYLE
        )
        self.console.print("[bold cyan]School administration shell[/bold cyan]  "
                           "[dim]Type 'help' for commands, 'exit' to quit[/dim]")

        while True:
            try:
                line = await prompt_session.prompt_async(HTML('<ansicyan><b>schooladmin></b></ansicyan> '))
            except KeyboardInterrupt:
                self.console.print("\n[dim]Cancelled[/dim]")
                continue
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue
            if line in ("exit", "quit", "/quit", "/exit"):
                break
            if line in ("help", "/help"):
                parser.print_help()
                continue

            try:
                argv = shlex.split(line)
                parsed = parser.parse_args(argv)
            except ValueError as e:
                self.console.print(f"[red]✗ {e}[/red]")
                continue
            except SystemExit:
                # argparse already printed usage or help
                continue

            if parsed.command == "shell":
                self.console.print("[dim]Already in the shell[/dim]")
                continue
            await self.run(parsed)

        self.console.print("[dim]Goodbye![/dim]")
