"""
HTTP client for the school API.

One httpx.AsyncClient per call. Every non-2xx response and every transport
failure surfaces as NetworkOrServerError; callers never see raw httpx errors.
"""

import time
from typing import Any, Dict, Optional

import httpx

from schooladmin.exceptions import NetworkOrServerError
from schooladmin.logging_config import logger


DEFAULT_BASE_URL = "https://api.achkhoy-obr.ru"


def _error_message(response: httpx.Response) -> str:
    """Best human-readable message for a failed response"""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("detail", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    elif response.text and len(response.text) <= 200:
        return response.text.strip() or f"HTTP error! status: {response.status_code}"

    return f"HTTP error! status: {response.status_code}"


class ApiClient:
    """
    Thin async wrapper around the REST API.

    Usage:
        api = ApiClient("https://api.example.org")
        data = await api.get_json("/classes", token=token)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport

    def _headers(self, token: Optional[str], json_body: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """Send a request and return the 2xx response"""
        # multipart bodies set their own Content-Type with the boundary
        headers = self._headers(token, json_body=json is not None)
        started = time.perf_counter()

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    path,
                    headers=headers,
                    json=json,
                    params=params or None,
                    files=files
                )
        except httpx.TimeoutException:
            logger.log_request(method, path, None, (time.perf_counter() - started) * 1000)
            raise NetworkOrServerError(
                f"Request timed out after {self.timeout}s",
                method=method, path=path
            )
        except httpx.HTTPError as e:
            logger.log_request(method, path, None, (time.perf_counter() - started) * 1000)
            raise NetworkOrServerError(
                f"Cannot connect to server: {e}",
                method=method, path=path
            )

        logger.log_request(method, path, response.status_code, (time.perf_counter() - started) * 1000)

        if not response.is_success:
            raise NetworkOrServerError(
                _error_message(response),
                status_code=response.status_code,
                method=method,
                path=path
            )

        return response

    @staticmethod
    def _json(response: httpx.Response, method: str, path: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise NetworkOrServerError(
                "Server returned a response that is not JSON",
                status_code=response.status_code,
                method=method,
                path=path
            )

    async def get_json(self, path: str, token: Optional[str] = None,
                       params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.request("GET", path, token=token, params=params)
        return self._json(response, "GET", path)

    async def post_json(self, path: str, data: Any, token: Optional[str] = None) -> Any:
        response = await self.request("POST", path, token=token, json=data)
        return self._json(response, "POST", path)

    async def put_json(self, path: str, data: Any, token: Optional[str] = None) -> Any:
        response = await self.request("PUT", path, token=token, json=data)
        return self._json(response, "PUT", path)

    async def delete(self, path: str, token: Optional[str] = None) -> None:
        await self.request("DELETE", path, token=token)

    async def upload(self, path: str, filename: str, content: bytes,
                     token: Optional[str] = None, field_name: str = "file",
                     content_type: str = "application/octet-stream") -> Any:
        """POST a multipart form with a single file field"""
        files = {field_name: (filename, content, content_type)}
        response = await self.request("POST", path, token=token, files=files)
        return self._json(response, "POST", path)

    async def download(self, path: str, token: Optional[str] = None) -> bytes:
        response = await self.request("GET", path, token=token)
        return response.content
