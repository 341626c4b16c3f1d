"""
Generic remote-backed collection.

Each store mirrors one REST collection:

    GET    <endpoint>?filters   -> replaces the cache (empty on failure)
    POST   <endpoint>           -> appends the server's entity
    PUT    <endpoint>/<id>      -> swaps in the server's entity
    DELETE <endpoint>/<id>      -> drops the entity

The cache only changes after a successful response, and every change of one
operation is committed at once before subscribers are told.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional

from schooladmin.api import ApiClient
from schooladmin.exceptions import (
    NetworkOrServerError,
    SchoolAdminError,
    UnauthenticatedError,
    ValidationError,
)
from schooladmin.logging_config import logger
from schooladmin.models import FieldSchema, query_params, validate_payload
from schooladmin.observable import Observable
from schooladmin.session import SessionStore


def same_id(left: Any, right: Any) -> bool:
    """Ids arrive as ints or strings depending on the collection"""
    return left is not None and right is not None and str(left) == str(right)


class ResourceStore(Observable):
    """
    Cache plus CRUD for one entity type.

    Subclasses set `endpoint`, `entity_name`, `schema` and `parse`.
    """

    endpoint: str = ""
    entity_name: str = "item"
    schema: FieldSchema = FieldSchema(converters={})
    parse: Callable[[Mapping[str, Any]], Any] = staticmethod(dict)

    def __init__(self, session: SessionStore, api: ApiClient):
        super().__init__()
        self.session = session
        self.api = api

        self.items: List[Any] = []
        self.error: Optional[str] = None
        self.current_filters: Any = None
        self._in_flight = 0

    # ==================== Paths ====================

    @property
    def list_path(self) -> str:
        return self.endpoint

    @property
    def create_path(self) -> str:
        return self.endpoint

    def item_path(self, item_id: Any) -> str:
        return f"{self.endpoint}/{item_id}"

    # ==================== Bookkeeping ====================

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def count(self) -> int:
        return len(self.items)

    def _start(self) -> None:
        self._in_flight += 1
        self._commit(error=None)

    def _settle(self, **changes: Any) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        self._commit(**changes)

    def _parse_one(self, data: Any) -> Any:
        if not isinstance(data, Mapping):
            raise NetworkOrServerError(f"Unexpected {self.entity_name} payload from server")
        try:
            return type(self).parse(data)
        except (TypeError, ValueError) as e:
            raise NetworkOrServerError(f"Unexpected {self.entity_name} payload from server: {e}")

    def _parse_many(self, data: Any) -> List[Any]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise NetworkOrServerError(f"Expected a list of {self.entity_name}s from server")
        return [self._parse_one(entry) for entry in data]

    def _index_of(self, item_id: Any) -> Optional[int]:
        for index, item in enumerate(self.items):
            if same_id(getattr(item, "id", None), item_id):
                return index
        return None

    def _create_body(self, cleaned: Dict[str, Any]) -> Dict[str, Any]:
        return cleaned

    def _update_body(self, cleaned: Dict[str, Any]) -> Dict[str, Any]:
        return cleaned

    # ==================== Queries ====================

    def get(self, item_id: Any) -> Optional[Any]:
        index = self._index_of(item_id)
        return None if index is None else self.items[index]

    def clear_error(self) -> None:
        self._commit(error=None)

    def clear_filters(self) -> None:
        self._commit(current_filters=None)

    def reset(self) -> None:
        """Drop cached items, filters and error"""
        self._commit(items=[], error=None, current_filters=None)

    # ==================== Operations ====================

    async def list(self, filters: Any = None) -> List[Any]:
        """
        Replace the cache with the server's list.

        Server and network failures empty the cache and set `error` instead
        of raising; a missing or expired token raises UnauthenticatedError.
        """
        self._start()
        try:
            token = self.session.require_token()
            data = await self.api.get_json(self.list_path, token=token, params=query_params(filters))
            items = self._parse_many(data)
        except UnauthenticatedError as e:
            self._settle(items=[], error=e.message, current_filters=filters)
            raise
        except NetworkOrServerError as e:
            logger.warning(f"Failed to fetch {self.entity_name}s: {e.message}")
            self._settle(items=[], error=e.message, current_filters=filters)
            return []
        except BaseException:
            self._settle()
            raise

        self._settle(items=items, error=None, current_filters=filters)
        logger.debug(f"Loaded {len(items)} {self.entity_name}s")
        return list(items)

    async def create(self, data: Mapping[str, Any]) -> Any:
        """POST a new entity and append the server's copy"""
        self._start()
        try:
            token = self.session.require_token()
            cleaned = validate_payload(data, self.schema)
            raw = await self.api.post_json(self.create_path, self._create_body(cleaned), token=token)
            entity = self._parse_one(raw)
        except SchoolAdminError as e:
            logger.warning(f"Failed to create {self.entity_name}: {e.message}")
            self._settle(error=e.message)
            raise
        except BaseException:
            self._settle()
            raise

        self._settle(items=self.items + [entity])
        logger.info(f"Created {self.entity_name} {getattr(entity, 'id', '')}")
        return entity

    async def update(self, item_id: Any, data: Mapping[str, Any]) -> Any:
        """PUT changes and replace the cached entry with the server's copy"""
        self._start()
        try:
            token = self.session.require_token()
            cleaned = validate_payload(data, self.schema, partial=True)
            body = self._update_body(cleaned)
            if not body:
                raise ValidationError("Nothing to update")
            raw = await self.api.put_json(self.item_path(item_id), body, token=token)
            entity = self._parse_one(raw)
        except SchoolAdminError as e:
            logger.warning(f"Failed to update {self.entity_name} {item_id}: {e.message}")
            self._settle(error=e.message)
            raise
        except BaseException:
            self._settle()
            raise

        items = list(self.items)
        index = self._index_of(item_id)
        if index is not None:
            items[index] = entity
        self._settle(items=items)
        logger.info(f"Updated {self.entity_name} {item_id}")
        return entity

    async def delete(self, item_id: Any) -> None:
        """DELETE the entity and drop it from the cache"""
        self._start()
        try:
            token = self.session.require_token()
            await self.api.delete(self.item_path(item_id), token=token)
        except SchoolAdminError as e:
            logger.warning(f"Failed to delete {self.entity_name} {item_id}: {e.message}")
            self._settle(error=e.message)
            raise
        except BaseException:
            self._settle()
            raise

        self._settle(items=[item for item in self.items if not same_id(getattr(item, "id", None), item_id)])
        logger.info(f"Deleted {self.entity_name} {item_id}")
