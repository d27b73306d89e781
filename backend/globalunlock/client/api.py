"""
HTTP client for the Global Unlock API.

Used by the admin panel integration and by the client state store to fetch
the full snapshot on startup and while polling.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ..schemas.state import CountryStateSchema, LockerStateSchema, StateSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    """The server answered with {success: false} or a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class MutationOutcomeUnknown(Exception):
    """
    The request timed out or the connection dropped after sending.

    The mutation may or may not have committed; callers should refresh state
    (or wait for the realtime event) instead of retrying blindly.
    """


class GlobalUnlockApi:
    """Thin async wrapper over the REST endpoints."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GlobalUnlockApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def stream_url(self) -> str:
        return f"{self.base_url}/v1/realtime/stream"

    def _unwrap(self, response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success and isinstance(body, dict) and body.get("success"):
            return body.get("data")

        message = body.get("error") if isinstance(body, dict) else None
        if not message:
            message = response.reason_phrase or "Request failed"
        logger.warning(f"API error {response.status_code} on {response.request.url.path}: {message}")
        raise ApiError(response.status_code, message)

    async def fetch_state(self) -> StateSnapshot:
        """
        Full snapshot: locker state plus every country.

        Raises:
            ApiError, httpx.HTTPError
        """
        response = await self._client.get("/v1/state")
        return StateSnapshot.model_validate(self._unwrap(response))

    async def _post_mutation(self, path: str, payload: Dict[str, Any]) -> Any:
        try:
            response = await self._client.post(path, json=payload)
        except (httpx.TimeoutException, httpx.RemoteProtocolError) as e:
            logger.warning(f"Mutation outcome unknown for {path}: {e}")
            raise MutationOutcomeUnknown(str(e)) from e
        return self._unwrap(response)

    async def update_country(
        self, country_code: str, mode: str, value: int, note: Optional[str] = None
    ) -> CountryStateSchema:
        payload: Dict[str, Any] = {"countryCode": country_code, "mode": mode, "value": value}
        if note:
            payload["note"] = note
        data = await self._post_mutation("/v1/admin/update-country", payload)
        return CountryStateSchema.model_validate(data)

    async def update_energy(self, mode: str, value: int, note: Optional[str] = None) -> LockerStateSchema:
        payload: Dict[str, Any] = {"mode": mode, "value": value}
        if note:
            payload["note"] = note
        data = await self._post_mutation("/v1/admin/update-energy", payload)
        return LockerStateSchema.model_validate(data)
