"""
Unit Tests for the Console Application
Tests for: argument parsing, command dispatch and exit codes
"""
import pytest
from rich.console import Console

from schooladmin.app import ConsoleApp, build_filters, parse_fields
from schooladmin.config import ConsoleConfig
from schooladmin.exceptions import ValidationError
from schooladmin.main import create_parser
from schooladmin.models import SchoolClass, StudentFilters
from schooladmin.preferences import ColumnPreferences
from schooladmin.renderer import Renderer, paginate
from schooladmin.session import ROLE_OVERSIGHT, TOKEN_KEY
from schooladmin.storage import MemoryStorage


@pytest.fixture
def parser():
    return create_parser()


@pytest.fixture
def make_app(tmp_path, server, clock):
    """Factory for an app wired to the stub server and in-memory storage"""

    def factory(token=None):
        config = ConsoleConfig(config_dir=str(tmp_path), api_base_url="https://api.test", page_size=0)
        storage = MemoryStorage({TOKEN_KEY: token} if token else None)
        console = Console(record=True, width=200, color_system=None)
        return ConsoleApp(config, console=console, storage=storage,
                          preferences_storage=MemoryStorage(),
                          transport=server.transport, clock=clock)

    return factory


def _output(app):
    return app.console.export_text()


class TestParser:
    """Test command line parsing"""

    def test_entity_actions(self, parser):
        args = parser.parse_args(["students", "list", "gender=female", "--page", "2"])

        assert args.command == "students"
        assert args.action == "list"
        assert args.filters == ["gender=female"]
        assert args.page == 2

    def test_delete_flags(self, parser):
        args = parser.parse_args(["classes", "delete", "3", "-y"])

        assert args.id == "3"
        assert args.yes is True

    def test_schools_have_no_import(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["schools", "import", "x.xlsx"])

    def test_columns(self, parser):
        args = parser.parse_args(["columns", "teachers", "show", "education"])

        assert (args.table, args.action, args.column) == ("teachers", "show", "education")


class TestFieldParsing:
    """Test key=value helpers"""

    def test_parse_fields(self):
        assert parse_fields(["name=5A", "note=a=b"]) == {"name": "5A", "note": "a=b"}

    def test_parse_fields_rejects_bare_words(self):
        with pytest.raises(ValidationError):
            parse_fields(["5A"])

    def test_build_filters(self):
        assert build_filters("students", ["class_id=3"]) == StudentFilters(class_id="3")
        assert build_filters("students", []) is None

    def test_build_filters_unknown_key(self):
        with pytest.raises(ValidationError):
            build_filters("students", ["shoe_size=38"])


class TestDispatch:
    """Test running commands end to end against the stub server"""

    @pytest.mark.asyncio
    async def test_login_and_status(self, make_app, parser, server, token_factory):
        server.add("POST", "/auth/login", json={"token": token_factory(role=ROLE_OVERSIGHT)})
        app = make_app()

        code = await app.run(parser.parse_args(["login", "-e", "admin", "-p", "admin"]))

        assert code == 0
        assert app.session.role == "roo"
        assert "schools" in _output(app)

        assert await app.run(parser.parse_args(["status"])) == 0
        assert "Education department" in _output(app)

    @pytest.mark.asyncio
    async def test_failed_login_exit_code(self, make_app, parser, server):
        server.add("POST", "/auth/login", status=401)
        app = make_app()

        code = await app.run(parser.parse_args(["login", "-e", "admin", "-p", "bad"]))

        assert code == 1
        assert "Invalid login or password" in _output(app)

    @pytest.mark.asyncio
    async def test_list_students_renders_class_names(self, make_app, parser, server,
                                                     token_factory, student_data):
        server.add("GET", "/classes", json=[{"id": 1, "name": "5A", "grade": 5}])
        server.add("GET", "/students", json=[
            student_data(1, class_id=1, full_name="Amina K.", gender="female"),
            student_data(2, class_id=42, full_name="Islam D.", gender="male"),
        ])
        app = make_app(token_factory())

        code = await app.run(parser.parse_args(["students", "list"]))

        output = _output(app)
        assert code == 0
        assert "Amina K." in output
        assert "5A" in output
        assert "Unassigned" in output

    @pytest.mark.asyncio
    async def test_oversight_cannot_add_students(self, make_app, parser, server, token_factory):
        app = make_app(token_factory(role=ROLE_OVERSIGHT))

        code = await app.run(parser.parse_args(["students", "add", "full_name=A", "class_id=1"]))

        assert code == 1
        assert server.requests == []
        assert "not allowed" in _output(app)

    @pytest.mark.asyncio
    async def test_signed_out_commands_fail(self, make_app, parser, server):
        app = make_app()

        assert await app.run(parser.parse_args(["dashboard"])) == 1
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_add_class(self, make_app, parser, server, token_factory):
        server.add("POST", "/classes", json={"id": 8, "name": "4A", "grade": 4})
        app = make_app(token_factory())

        code = await app.run(parser.parse_args(["classes", "add", "name=4A", "grade=4"]))

        assert code == 0
        assert app.classes.get(8).name == "4A"

    @pytest.mark.asyncio
    async def test_logout_clears_cached_rosters(self, make_app, parser, server, token_factory):
        server.add("GET", "/classes", json=[{"id": 1, "name": "5A", "grade": 5}])
        app = make_app(token_factory())
        await app.run(parser.parse_args(["classes", "list"]))
        assert app.classes.count == 1

        await app.run(parser.parse_args(["logout"]))

        assert app.classes.count == 0
        assert app.session.is_authenticated is False

    @pytest.mark.asyncio
    async def test_columns_command(self, make_app, parser):
        app = make_app()

        code = await app.run(parser.parse_args(["columns", "teachers", "show", "education"]))

        assert code == 0
        assert "education" in app.preferences.visible_columns("teachers")

    @pytest.mark.asyncio
    async def test_no_command(self, make_app, parser):
        app = make_app()

        assert await app.run(parser.parse_args([])) == 1


class TestRenderer:
    """Test paging and status rendering"""

    @staticmethod
    def _text(renderable):
        console = Console(record=True, width=200, color_system=None)
        console.print(renderable)
        return console.export_text()

    def test_paginate_slices(self):
        assert paginate(list(range(5)), 2, 2) == [2, 3]
        assert paginate(list(range(5)), 1, 0) == [0, 1, 2, 3, 4]

    def test_page_past_the_end_shows_last_page(self):
        assert paginate(list(range(5)), 9, 2) == [4]
        assert paginate([], 3, 2) == []

    def test_caption_matches_rows_past_the_end(self):
        """Test that the caption names the page whose rows are shown"""
        renderer = Renderer(ColumnPreferences(MemoryStorage()), page_size=2)
        classes = [SchoolClass(id=i, name=f"{i}A", grade=i) for i in range(1, 6)]

        output = self._text(renderer.classes_table(classes, page=9))

        assert "page 3 of 3" in output
        assert "5A" in output
        assert "1A" not in output

    @pytest.mark.asyncio
    async def test_status_with_far_future_expiry(self, make_app, parser, token_factory):
        """Test that an exp beyond the datetime range still renders"""
        app = make_app(token_factory(exp=1e15))

        code = await app.run(parser.parse_args(["status"]))

        assert code == 0
        assert "Session expires: -" in _output(app)
