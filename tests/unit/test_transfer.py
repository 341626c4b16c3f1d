"""
Unit Tests for Roster Import and Template Download
"""
import pytest

from schooladmin.exceptions import NetworkOrServerError, PermissionDeniedError, ValidationError
from schooladmin.stores import ClassStore, StudentStore, TeacherStore
from schooladmin.transfer import ImportSummary, RosterTransfer


@pytest.fixture
def transfer(school_session, api):
    classes = ClassStore(school_session, api)
    stores = {
        "students": StudentStore(school_session, api, classes),
        "teachers": TeacherStore(school_session, api),
    }
    return RosterTransfer(school_session, api, stores)


@pytest.fixture
def roster_file(tmp_path):
    path = tmp_path / "roster.xlsx"
    path.write_bytes(b"PK\x03\x04fake-xlsx")
    return path


class TestImport:
    """Test bulk import"""

    @pytest.mark.asyncio
    async def test_import_uploads_file_field_and_refreshes(self, transfer, server, roster_file, teacher_data):
        """Test the multipart upload and the store refresh"""
        server.add("POST", "/staff/import", json={"imported": 2})
        server.add("GET", "/staff", json=[teacher_data(1), teacher_data(2)])

        summary = await transfer.import_file("teachers", roster_file)

        assert summary == ImportSummary(imported=2, message=None)
        assert summary.describe("teachers") == "Imported 2 teachers"
        upload = server.calls("POST", "/staff/import")[0]
        assert upload.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="file"; filename="roster.xlsx"' in upload.content
        assert b"fake-xlsx" in upload.content
        assert transfer.stores["teachers"].count == 2

    @pytest.mark.asyncio
    async def test_import_message_only(self, transfer, server, roster_file, student_data):
        """Test a response carrying only a message"""
        server.add("POST", "/students/import", json={"message": "Queued"})
        server.add("GET", "/classes", json=[])
        server.add("GET", "/students", json=[])

        summary = await transfer.import_file("students", roster_file)

        assert summary.imported is None
        assert summary.describe("students") == "Queued"

    @pytest.mark.asyncio
    async def test_import_rejected(self, transfer, server, roster_file):
        """Test that a failed upload raises and does not refresh"""
        server.add("POST", "/students/import", status=400, json={"detail": "Bad sheet"})

        with pytest.raises(NetworkOrServerError) as exc_info:
            await transfer.import_file("students", roster_file)

        assert exc_info.value.message == "Bad sheet"
        assert server.calls("GET", "/students") == []

    @pytest.mark.asyncio
    async def test_unsupported_extension(self, transfer, server, tmp_path):
        path = tmp_path / "roster.pdf"
        path.write_bytes(b"%PDF")

        with pytest.raises(ValidationError):
            await transfer.import_file("students", path)

        assert server.requests == []

    @pytest.mark.asyncio
    async def test_missing_file(self, transfer, tmp_path):
        with pytest.raises(ValidationError):
            await transfer.import_file("students", tmp_path / "absent.csv")

    @pytest.mark.asyncio
    async def test_unknown_kind(self, transfer, roster_file):
        with pytest.raises(ValidationError):
            await transfer.import_file("schools", roster_file)

    @pytest.mark.asyncio
    async def test_oversight_cannot_import(self, oversight_session, api, server, roster_file):
        """Test that the roster gate applies"""
        transfer = RosterTransfer(oversight_session, api, {})

        with pytest.raises(PermissionDeniedError):
            await transfer.import_file("students", roster_file)

        assert server.requests == []


class TestTemplate:
    """Test template download"""

    @pytest.mark.asyncio
    async def test_download_into_directory(self, transfer, server, tmp_path):
        """Test the default file name inside a directory"""
        server.add("GET", "/students/import/template", content=b"PK-template")

        target = await transfer.download_template("students", tmp_path)

        assert target == tmp_path / "students_template.xlsx"
        assert target.read_bytes() == b"PK-template"

    @pytest.mark.asyncio
    async def test_download_to_file_path(self, transfer, server, tmp_path):
        server.add("GET", "/staff/import/template", content=b"bytes")
        dest = tmp_path / "out" / "staff.xlsx"

        target = await transfer.download_template("teachers", dest)

        assert target == dest
        assert dest.read_bytes() == b"bytes"
