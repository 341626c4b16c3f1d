"""Schools under oversight (elevated role only)"""

from typing import Any, Dict

from schooladmin.models import SCHOOL_SCHEMA, School
from schooladmin.stores.base import ResourceStore


class SchoolStore(ResourceStore):
    endpoint = "/roo/schools"
    entity_name = "school"
    schema = SCHOOL_SCHEMA
    parse = staticmethod(School.from_dict)

    @property
    def create_path(self) -> str:
        # registration provisions the school's login along with it
        return "/roo/register_school"

    def _create_body(self, cleaned: Dict[str, Any]) -> Dict[str, Any]:
        return {key: cleaned[key] for key in ("name", "director", "email") if key in cleaned}
