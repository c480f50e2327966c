"""Async HTTP gateway shared by every backend adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from bookflow.application.exceptions import AuthenticationError, GatewayError
from bookflow.domain.entities.admin_session import AdminSession


class ApiGateway:
    def __init__(
        self,
        base_url: str,
        session: AdminSession,
        timeout: float = 10.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._session = session
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._logger = logging.getLogger(__name__)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            resp = await self._http.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._session.auth_headers(),
            )
        except httpx.HTTPError as e:
            self._logger.warning(
                "Backend request failed",
                extra={"reason": f"{method} {path}", "error": str(e)},
            )
            raise GatewayError(f"{method} {path} failed: {e}") from e

        if resp.status_code == 401:
            self._session.logout()
            raise AuthenticationError("Admin session is no longer valid", status_code=401)

        if resp.status_code >= 400:
            try:
                error_json = resp.json()
                error_message = error_json.get("message") if isinstance(error_json, dict) else None
            except ValueError:
                error_message = None
            self._logger.error(
                "Backend returned error status",
                extra={
                    "status": resp.status_code,
                    "reason": f"{method} {path}",
                    "error": error_message or resp.text[:200],
                },
            )
            raise GatewayError(
                error_message or f"{method} {path} returned {resp.status_code}",
                status_code=resp.status_code,
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise GatewayError(f"{method} {path} returned a non-JSON body") from e

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: dict[str, Any] | None = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: dict[str, Any] | None = None) -> Any:
        return await self.request("PUT", path, json=json)
