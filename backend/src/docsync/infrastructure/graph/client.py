"""Microsoft Graph REST client.

Thin async wrapper around httpx that authenticates with the OAuth2
client-credentials flow and caches the access token until shortly before
it expires.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from ...config import Settings
from ...domain.errors import MailSourceError

logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"

# Refresh the token this many seconds before Graph says it expires
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class GraphApiError(MailSourceError):
    """A Graph call failed (transport error, timeout or non-2xx status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class GraphConfig:
    tenant_id: str
    client_id: str
    client_secret: str
    mailbox: str
    base_url: str = "https://graph.microsoft.com/v1.0"
    authority_url: str = "https://login.microsoftonline.com"
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "GraphConfig":
        """Build Graph configuration from settings.

        Raises:
            ValueError: If a credential or the mailbox is not configured
        """
        missing = [
            name for name in (
                "GRAPH_TENANT_ID", "GRAPH_CLIENT_ID", "GRAPH_CLIENT_SECRET", "GRAPH_MAILBOX",
            )
            if not getattr(settings, name)
        ]
        if missing:
            raise ValueError(f"Missing Microsoft Graph settings: {', '.join(missing)}")

        return cls(
            tenant_id=settings.GRAPH_TENANT_ID,
            client_id=settings.GRAPH_CLIENT_ID,
            client_secret=settings.GRAPH_CLIENT_SECRET,
            mailbox=settings.GRAPH_MAILBOX,
            base_url=settings.GRAPH_BASE_URL,
            authority_url=settings.GRAPH_AUTHORITY_URL,
            timeout=settings.GRAPH_TIMEOUT_SECONDS,
        )

    @property
    def token_url(self) -> str:
        return f"{self.authority_url.rstrip('/')}/{self.tenant_id}/oauth2/v2.0/token"


class GraphClient:
    """Authenticated JSON calls against the Graph API.

    Usage:
        client = GraphClient(GraphConfig.from_settings(settings))
        message = await client.get_json(f"/users/{mailbox}/messages/{message_id}")
        await client.aclose()
    """

    def __init__(
        self,
        config: GraphConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.http = http_client or httpx.AsyncClient(timeout=config.timeout)
        self.clock = clock
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    async def get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        return await self._request("GET", path, params=params)

    async def post_json(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", path, json=body)

    async def patch_json(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PATCH", path, json=body)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        # @odata.nextLink values are absolute URLs
        url = path if path.startswith("http") else f"{self.config.base_url.rstrip('/')}{path}"
        token = await self._access_token()

        try:
            response = await self.http.request(
                method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        except httpx.TimeoutException as e:
            raise GraphApiError(f"Graph {method} {path} timed out: {e}")
        except httpx.HTTPError as e:
            raise GraphApiError(f"Graph {method} {path} failed: {e}")

        if response.status_code == 401:
            # Token revoked or rotated early; next call fetches a new one
            self._token = None

        if response.is_error:
            logger.error(f"Graph {method} {path} returned {response.status_code}: {response.text[:500]}")
            raise GraphApiError(
                f"Graph {method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise GraphApiError(
                f"Graph {method} {path} returned a non-JSON body", status_code=response.status_code
            )

    async def _access_token(self) -> str:
        async with self._token_lock:
            if self._token and self.clock() < self._token_expires_at:
                return self._token

            try:
                response = await self.http.post(
                    self.config.token_url,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.config.client_id,
                        "client_secret": self.config.client_secret,
                        "scope": GRAPH_SCOPE,
                    },
                )
            except httpx.HTTPError as e:
                raise GraphApiError(f"Graph token request failed: {e}")

            try:
                data = response.json() if response.content else {}
            except ValueError:
                raise GraphApiError(
                    f"Graph token endpoint returned a non-JSON body ({response.status_code})",
                    status_code=response.status_code,
                )
            if response.is_error or "access_token" not in data:
                error_desc = data.get("error_description", data.get("error", "unknown error"))
                raise GraphApiError(
                    f"Graph token error: {error_desc}", status_code=response.status_code
                )

            expires_in = int(data.get("expires_in", 3600))
            self._token = data["access_token"]
            self._token_expires_at = self.clock() + max(0, expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
            logger.debug(f"Acquired Graph token valid for {expires_in}s")
            return self._token
