"""
Shared fixtures: a stub API server, a controllable clock and token minting.
"""
import base64
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from faker import Faker

from schooladmin.api import ApiClient
from schooladmin.session import ROLE_OVERSIGHT, ROLE_SCHOOL, TOKEN_KEY, SessionStore
from schooladmin.storage import MemoryStorage

fake = Faker()

BASE_URL = "https://api.test"
NOW = 1_700_000_000.0


def make_token(exp: Optional[float] = None, role: str = ROLE_SCHOOL, user_id: int = 1,
               school_name: Optional[str] = None, **extra: Any) -> str:
    """Unsigned token carrying the given claims"""
    payload: Dict[str, Any] = {
        "exp": NOW + 3600 if exp is None else exp,
        "role": role,
        "user_id": user_id,
        **extra,
    }
    if school_name is not None:
        payload["school_name"] = school_name
    segment = base64.urlsafe_b64encode(
        json.dumps(payload, ensure_ascii=False).encode("utf-8")
    ).rstrip(b"=").decode("ascii")
    return f"eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.{segment}.c2lnbmF0dXJl"


class FakeClock:
    """Callable returning a settable epoch time"""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


Route = Any


class StubServer:
    """
    Canned responses keyed by (method, path).

    Several responses queued for one route are served in order; the last
    one repeats. Unknown routes answer 404.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Route]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, json: Any = None,
            content: Optional[bytes] = None,
            handler: Optional[Callable[[httpx.Request], httpx.Response]] = None) -> None:
        if handler is None:
            def handler(request, status=status, json=json, content=content):
                if content is not None:
                    return httpx.Response(status, content=content)
                if json is None:
                    return httpx.Response(status)
                return httpx.Response(status, json=json)
        self.routes.setdefault((method.upper(), path), []).append(handler)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"detail": "Not Found"})
        handler = queue.pop(0) if len(queue) > 1 else queue[0]
        return handler(request)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def server() -> StubServer:
    return StubServer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def api(server: StubServer) -> ApiClient:
    return ApiClient(BASE_URL, timeout=5.0, transport=server.transport)


@pytest.fixture
def session(api: ApiClient, storage: MemoryStorage, clock: FakeClock) -> SessionStore:
    """Signed-out session"""
    return SessionStore(api, storage, clock=clock)


@pytest.fixture
def make_session(api: ApiClient, clock: FakeClock) -> Callable[..., SessionStore]:
    """Factory for a session restored from a stored, valid token"""

    def factory(role: str = ROLE_SCHOOL, **claims: Any) -> SessionStore:
        storage = MemoryStorage({TOKEN_KEY: make_token(role=role, **claims)})
        return SessionStore(api, storage, clock=clock)

    return factory


@pytest.fixture
def school_session(make_session) -> SessionStore:
    return make_session(ROLE_SCHOOL, user_id=7, school_name="School No. 1")


@pytest.fixture
def oversight_session(make_session) -> SessionStore:
    return make_session(ROLE_OVERSIGHT, user_id=1)


def student_payload(student_id: int, class_id: Optional[int] = 1, **extra: Any) -> Dict[str, Any]:
    return {
        "id": student_id,
        "full_name": extra.pop("full_name", fake.name()),
        "class_id": class_id,
        "gender": extra.pop("gender", "female"),
        "birth_date": "2012-05-01",
        "school_id": 7,
        **extra,
    }


def teacher_payload(teacher_id: int, subject: str = "Math", **extra: Any) -> Dict[str, Any]:
    return {
        "id": teacher_id,
        "full_name": extra.pop("full_name", fake.name()),
        "phone": "+7 900 000-00-00",
        "position": "Teacher",
        "subject": subject,
        **extra,
    }


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token


@pytest.fixture
def student_data() -> Callable[..., Dict[str, Any]]:
    return student_payload


@pytest.fixture
def teacher_data() -> Callable[..., Dict[str, Any]]:
    return teacher_payload
