"""
REST API Storage Implementation

Persists wizard payloads through the records API:
- create: POST /{resource}
- update: PUT  /{resource}/{id}

Transient transport failures (connection refused, timeouts) are retried
with exponential backoff. HTTP error responses are NOT retried - they are
turned into a StorageError whose message is the server's "error" field,
which the wizard shows to the user verbatim.
"""

from typing import Any, Optional

import requests
import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from entry_wizard.config import get_settings
from entry_wizard.models.category import EntryKind
from entry_wizard.services.storage.interface import (
    ConnectionError,
    EntryStorageInterface,
    NotFoundError,
    StorageError,
)


RESOURCE_PATHS: dict[EntryKind, str] = {
    EntryKind.ASSET: "/assets",
    EntryKind.INCOME: "/income",
    EntryKind.EXPENSE: "/expenses",
}


class ApiEntryStorage(EntryStorageInterface):
    """
    Entry storage backed by the HTTP records API.

    Usage:
        storage = ApiEntryStorage()                        # from ENTRY_API_* settings
        storage = ApiEntryStorage(base_url="http://localhost:5000/api")
        await storage.save(EntryKind.INCOME, payload)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        auth_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        retry_wait_seconds: float = 1.0,
    ):
        if base_url is None:
            settings = get_settings().api
            base_url = settings.base_url
            timeout_seconds = timeout_seconds or settings.timeout_seconds
            max_retries = max_retries or settings.max_retries
            auth_token = auth_token or settings.auth_token

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds or 15.0
        self._auth_token = auth_token
        self._session = session or requests.Session()
        self._retrying = Retrying(
            stop=stop_after_attempt(max_retries or 3),
            wait=wait_exponential(multiplier=retry_wait_seconds, max=10),
            retry=retry_if_exception_type(ConnectionError),
            reraise=True,
        )
        self._logger = structlog.get_logger(__name__)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    def _send(self, method: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """One HTTP round trip, mapping transport errors to storage errors."""
        url = f"{self._base_url}{path}"
        self._logger.info("api_request", method=method, path=path)

        try:
            response = self._session.request(
                method=method,
                url=url,
                json=payload,
                headers=self._headers(),
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0
            message = _error_message(e.response) or f"Request failed with status {status_code}"
            self._logger.error("api_error", method=method, path=path, status_code=status_code)
            if status_code == 404:
                raise NotFoundError(message)
            raise StorageError(message)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            self._logger.warning("api_unreachable", method=method, path=path, error=str(e))
            raise ConnectionError(f"Could not reach the server: {e}")
        except requests.exceptions.RequestException as e:
            raise StorageError(f"Request failed: {e}")

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError:
            return {}
        # The API wraps single records as {"data": {...}} on some routes
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            return body["data"]
        return body if isinstance(body, dict) else {}

    async def save(
        self,
        kind: EntryKind,
        payload: dict[str, Any],
        entity_id: Optional[int] = None,
    ) -> dict[str, Any]:
        path = RESOURCE_PATHS[EntryKind(kind)]
        if entity_id is not None:
            method, path = "PUT", f"{path}/{entity_id}"
        else:
            method = "POST"

        return self._retrying(self._send, method, path, payload)


def _error_message(response: Optional[requests.Response]) -> Optional[str]:
    """Pull the user-facing message out of an error response body."""
    if response is None:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("error", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None
