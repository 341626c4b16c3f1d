"""
Rich renderables for the console.

Builders return tables and panels instead of printing them, so the app
decides where output goes and tests can inspect what was built.
"""

from typing import Any, Iterable, List, Optional, Sequence, Tuple

from rich.panel import Panel
from rich.table import Table

from schooladmin.dashboard import Summary
from schooladmin.models import School, SchoolClass, Teacher
from schooladmin.preferences import ColumnPreferences, column_titles
from schooladmin.session import ROLE_OVERSIGHT, SessionStore
from schooladmin.stores import StudentStore
from schooladmin.token_codec import Claims


ROLE_LABELS = {
    ROLE_OVERSIGHT: "Education department",
    "school": "School",
}


def gender_label(value: Optional[str]) -> str:
    if value == "male":
        return "M"
    if value == "female":
        return "F"
    return "-"


def _cell(value: Any) -> str:
    return "-" if value is None or value == "" else str(value)


def _expiry_label(claims: Optional[Claims]) -> str:
    if claims is None:
        return "-"
    try:
        return claims.expires_at.astimezone().strftime("%Y-%m-%d %H:%M")
    except (OverflowError, ValueError, OSError):
        return "-"


def page_count(total: int, page_size: int) -> int:
    if page_size <= 0:
        return 1
    return max(1, -(-total // page_size))


def clamp_page(page: int, total: int, page_size: int) -> int:
    """Page number limited to 1..page_count"""
    return min(max(page, 1), page_count(total, page_size))


def paginate(items: Sequence[Any], page: int, page_size: int) -> List[Any]:
    """
    Items on a 1-based page; page_size <= 0 disables slicing.

    A page past the end shows the last page.
    """
    if page_size <= 0:
        return list(items)
    start = (clamp_page(page, len(items), page_size) - 1) * page_size
    return list(items[start:start + page_size])


class Renderer:
    """Builds tables restricted to the columns the user keeps visible"""

    def __init__(self, preferences: ColumnPreferences, page_size: int = 10):
        self.preferences = preferences
        self.page_size = page_size

    def _table(self, title: str, table_name: str, total: int, page: int) -> Tuple[Table, List[str]]:
        columns = self.preferences.visible_columns(table_name)
        titles = column_titles(table_name)
        pages = page_count(total, self.page_size)
        table = Table(
            title=title,
            caption=f"{total} total, page {clamp_page(page, total, self.page_size)} of {pages}",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("ID", justify="right", style="dim")
        for column in columns:
            table.add_column(titles[column])
        return table, columns

    def students_table(self, store: StudentStore, page: int = 1) -> Table:
        table, columns = self._table("Students", "students", store.count, page)
        for student in paginate(store.items, page, self.page_size):
            row = []
            for column in columns:
                if column == "class_id":
                    row.append(store.class_label(student))
                elif column == "gender":
                    row.append(gender_label(student.gender))
                else:
                    row.append(_cell(getattr(student, column)))
            table.add_row(_cell(student.id), *row)
        return table

    def teachers_table(self, teachers: Sequence[Teacher], page: int = 1) -> Table:
        table, columns = self._table("Teachers", "teachers", len(teachers), page)
        for teacher in paginate(teachers, page, self.page_size):
            table.add_row(_cell(teacher.id), *(_cell(getattr(teacher, c)) for c in columns))
        return table

    def classes_table(self, classes: Sequence[SchoolClass], page: int = 1) -> Table:
        table, columns = self._table("Classes", "classes", len(classes), page)
        for school_class in paginate(classes, page, self.page_size):
            table.add_row(_cell(school_class.id), *(_cell(getattr(school_class, c)) for c in columns))
        return table

    def schools_table(self, schools: Sequence[School], page: int = 1) -> Table:
        table = Table(title="Schools", caption=f"{len(schools)} total",
                      show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name")
        table.add_column("Director")
        table.add_column("Login")
        table.add_column("Classes", justify="right")
        table.add_column("Students", justify="right")
        for school in paginate(schools, page, self.page_size):
            table.add_row(
                _cell(school.id),
                _cell(school.name),
                _cell(school.director),
                _cell(school.email),
                str(school.class_count),
                str(school.student_count),
            )
        return table

    def dashboard_panel(self, summary: Summary) -> Panel:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column(style="bold")
        table.add_column(justify="right", style="cyan")
        table.add_row("Students", str(summary.students))
        table.add_row("Teachers", str(summary.teachers))
        table.add_row("Classes", str(summary.classes))
        if summary.schools is not None:
            table.add_row("Schools", str(summary.schools))
        subtitle = "[dim]from cached lists[/dim]" if summary.from_cache else None
        return Panel(table, title="[bold cyan]Dashboard[/bold cyan]",
                     subtitle=subtitle, border_style="cyan")

    def status_panel(self, session: SessionStore) -> Panel:
        if not session.is_authenticated:
            return Panel(
                "[red]Not authenticated[/red]\n\n"
                "Please login using: [cyan]schooladmin login[/cyan]",
                title="Authentication Status",
                border_style="red"
            )

        claims = session.claims
        expires = _expiry_label(claims)
        lines = [
            "[green]Authenticated[/green]",
            "",
            f"[bold]Role:[/bold] {ROLE_LABELS.get(session.role, session.role)}",
            f"[bold]User ID:[/bold] {session.user_id}",
        ]
        if session.school_name:
            lines.append(f"[bold]School:[/bold] {session.school_name}")
        lines.append(f"[dim]Session expires: {expires}[/dim]")
        return Panel("\n".join(lines), title="Authentication Status", border_style="green")

    @staticmethod
    def navigation(sections: Iterable[str]) -> str:
        return "  ".join(f"[cyan]{name}[/cyan]" for name in sections)

    @staticmethod
    def columns_table(preferences: ColumnPreferences, table_name: str) -> Table:
        titles = column_titles(table_name)
        table = Table(title=f"{table_name.capitalize()} columns", show_header=True,
                      header_style="bold")
        table.add_column("Column")
        table.add_column("Title")
        table.add_column("Visible")
        for column, visible in preferences.settings(table_name).items():
            table.add_row(column, titles[column], "[green]yes[/green]" if visible else "[red]no[/red]")
        return table
