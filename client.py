import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from errors import ApiError, AuthExpiredError, NotFoundError
from session import SessionContext

logger = logging.getLogger(__name__)


def _error_body(response: httpx.Response) -> Tuple[Optional[str], Dict[str, str]]:
    """Backend message plus per-field errors ({"errors": [{"path", "msg"}]})."""
    try:
        body = response.json()
    except ValueError:
        return None, {}
    if not isinstance(body, dict):
        return None, {}
    message = body.get("message")
    if not isinstance(message, str) or not message:
        message = None
    field_errors = {}
    for err in body.get("errors") or []:
        if isinstance(err, dict) and err.get("path"):
            field_errors.setdefault(str(err["path"]), str(err.get("msg", "Invalid value")))
    return message, field_errors


class ApiClient:
    """JSON client for the storefront backend, signed with the session token."""

    def __init__(
        self,
        base_url: str,
        session: SessionContext,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            event_hooks={"request": [self._sign], "response": [self._expire_on_401]},
            transport=transport,
        )

    async def _sign(self, request: httpx.Request) -> None:
        if self.session.token:
            request.headers["Authorization"] = f"Bearer {self.session.token}"

    async def _expire_on_401(self, response: httpx.Response) -> None:
        if response.status_code == 401 and self.session.is_authenticated:
            logger.info("Backend rejected the session token, signing out")
            self.session.clear()

    async def request(self, method: str, path: str, fallback: str = "Request failed", **kwargs) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ApiError(503, fallback) from e

        if response.is_error:
            message, field_errors = _error_body(response)
            message = message or fallback
            logger.warning("%s %s -> %s %s", method, path, response.status_code, message)
            if response.status_code == 401:
                raise AuthExpiredError(message)
            if response.status_code == 404:
                raise NotFoundError(message)
            raise ApiError(response.status_code, message, field_errors)

        if not response.content:
            return {}
        return response.json()

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        await self._http.aclose()
