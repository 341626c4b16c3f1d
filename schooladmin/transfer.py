"""
Bulk roster import and template download.

Imports are multipart uploads with a single `file` field; templates are
spreadsheets streamed back as bytes and written to disk.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiofiles

from schooladmin.access import Feature, require
from schooladmin.api import ApiClient
from schooladmin.exceptions import ValidationError
from schooladmin.logging_config import logger
from schooladmin.session import SessionStore
from schooladmin.stores import ResourceStore


CONTENT_TYPES = {
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".csv": "text/csv",
}

# kind -> (import path, template path, default template filename)
ROSTERS = {
    "students": ("/students/import", "/students/import/template", "students_template.xlsx"),
    "teachers": ("/staff/import", "/staff/import/template", "teachers_template.xlsx"),
}


@dataclass
class ImportSummary:
    imported: Optional[int] = None
    message: Optional[str] = None

    @classmethod
    def from_response(cls, data: Any) -> "ImportSummary":
        if not isinstance(data, dict):
            return cls()
        imported = data.get("imported")
        if isinstance(imported, bool) or not isinstance(imported, int):
            imported = None
        message = data.get("message")
        return cls(imported=imported, message=message if isinstance(message, str) else None)

    def describe(self, kind: str) -> str:
        if self.imported is not None:
            return f"Imported {self.imported} {kind}"
        return self.message or "Import completed"


class RosterTransfer:
    """Uploads roster spreadsheets and fetches blank templates"""

    def __init__(self, session: SessionStore, api: ApiClient, stores: Dict[str, ResourceStore]):
        self.session = session
        self.api = api
        self.stores = stores

    @staticmethod
    def _roster(kind: str):
        if kind not in ROSTERS:
            raise ValidationError(
                f"Unknown roster '{kind}'", fields={"kind": f"expected one of {', '.join(ROSTERS)}"}
            )
        return ROSTERS[kind]

    async def import_file(self, kind: str, path: Union[str, Path]) -> ImportSummary:
        """
        Upload a spreadsheet and refresh the matching store.

        Raises:
            ValidationError: unknown kind, missing file or unsupported extension
            PermissionDeniedError: the role cannot import rosters
            NetworkOrServerError: the upload was rejected
        """
        import_path, _, _ = self._roster(kind)
        require(self.session, Feature.IMPORT_ROSTER)

        source = Path(path).expanduser()
        content_type = CONTENT_TYPES.get(source.suffix.lower())
        if content_type is None:
            raise ValidationError(
                f"Unsupported file type '{source.suffix}'",
                fields={"file": f"expected {', '.join(CONTENT_TYPES)}"},
            )
        if not source.is_file():
            raise ValidationError(f"File not found: {source}", fields={"file": "not found"})

        async with aiofiles.open(source, "rb") as f:
            content = await f.read()

        token = self.session.require_token()
        data = await self.api.upload(import_path, source.name, content, token=token,
                                     content_type=content_type)
        summary = ImportSummary.from_response(data)
        logger.info(f"Imported {kind} from {source.name}: {summary.describe(kind)}")

        store = self.stores.get(kind)
        if store is not None:
            await store.list(store.current_filters)
        return summary

    async def download_template(self, kind: str, dest: Optional[Union[str, Path]] = None) -> Path:
        """Save the import template; `dest` may be a directory or a file path"""
        _, template_path, filename = self._roster(kind)
        require(self.session, Feature.DOWNLOAD_TEMPLATE)

        target = Path(dest).expanduser() if dest else Path.cwd() / filename
        if target.is_dir():
            target = target / filename

        token = self.session.require_token()
        content = await self.api.download(template_path, token=token)

        target.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(target, "wb") as f:
            await f.write(content)

        logger.info(f"Saved {kind} template to {target} ({len(content)} bytes)")
        return target
