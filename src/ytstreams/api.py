"""Authenticated Innertube API client."""

from __future__ import annotations

import enum
import logging
from typing import Any, Mapping, Optional

import httpx

from ytstreams.auth import generate_cookie_auth_headers
from ytstreams.clients import DEFAULT_YT_CLIENT, InnerTubeClient, get_client
from ytstreams.errors import ApiCallError
from ytstreams.models import SessionState
from ytstreams.transport import Transport
from ytstreams.ytcfg import extract_client_version, select_visitor_data

logger = logging.getLogger(__name__)

API_ROOT = "youtubei/v1"


class YtEndpoint(enum.Enum):
    PLAYER = "player"
    NEXT = "next"


class InnertubeApi:
    """Builds client-specific requests and posts them through a Transport."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    @staticmethod
    def origin(client: InnerTubeClient) -> str:
        return f"https://{client.innertube_host}"

    def build_headers(
        self,
        ytcfg: Optional[Mapping[str, Any]],
        session: SessionState,
        client: InnerTubeClient,
    ) -> dict[str, str]:
        origin = self.origin(client)
        headers = {
            "X-YouTube-Client-Name": str(client.context_client_name),
            "X-YouTube-Client-Version": extract_client_version(ytcfg, client),
            "Origin": origin,
        }
        visitor_data = session.visitor_data or select_visitor_data(ytcfg)
        if visitor_data:
            headers["X-Goog-Visitor-Id"] = visitor_data
        if client.user_agent:
            headers["User-Agent"] = client.user_agent
        if session.authenticated and client.supports_cookies:
            headers.update(generate_cookie_auth_headers(
                ytcfg,
                sid_cookies=self._transport.sid_cookies(),
                origin=origin,
                delegated_session_id=session.delegated_session_id,
                user_session_id=session.user_session_id,
                session_index=session.session_index,
                require_auth=client.require_auth,
            ))
        return headers

    async def call(
        self,
        endpoint: YtEndpoint,
        query: Mapping[str, Any],
        *,
        headers: Optional[Mapping[str, str]] = None,
        context: Optional[Mapping[str, Any]] = None,
        api_key: Optional[str] = None,
        client: Optional[InnerTubeClient] = None,
        ytcfg: Optional[Mapping[str, Any]] = None,
        session: Optional[SessionState] = None,
    ) -> dict:
        """POST *query* to *endpoint* and return the decoded JSON object.

        Raises:
            ApiCallError: On a malformed URL, transport failure, error status
                or a body that is not a JSON object.
        """
        client = client or get_client(DEFAULT_YT_CLIENT)
        url = f"https://{client.innertube_host}/{API_ROOT}/{endpoint.value}"
        try:
            httpx.URL(url)
        except httpx.InvalidURL as exc:
            raise ApiCallError(f"Malformed API URL {url!r}") from exc

        data: dict[str, Any] = {"context": dict(context) if context is not None else client.context()}
        data.update(query)
        params = {"prettyPrint": "false"}
        if api_key:
            params["key"] = api_key

        real_headers = self.build_headers(ytcfg, session or SessionState(), client)
        if headers:
            real_headers.update(headers)
        real_headers["Content-Type"] = "application/json"

        logger.debug("Calling %s endpoint with %s client", endpoint.value, client.name.value)
        try:
            response = await self._transport.send(
                "POST", url, headers=real_headers, params=params, json=data
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise ApiCallError(f"{endpoint.value} API call failed: {exc}") from exc
        except ValueError as exc:
            raise ApiCallError(f"{endpoint.value} API returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ApiCallError(f"{endpoint.value} API returned {type(payload).__name__}, expected object")
        return payload
