"""Async REST client for the content backend (PocketBase-style record API)."""

import asyncio
import logging
import ssl
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import aiohttp
import truststore

from errors import BackendUnavailable, ConfigurationError

logger = logging.getLogger('portfolio_export.client')

DEFAULT_PER_PAGE = 200


class BackendClient:
    """
    Authenticated client for the backend's collection and file endpoints.

    One failed request raises BackendUnavailable; nothing is retried and no
    record data is cached.
    """

    def __init__(
        self,
        base_url: Optional[str],
        token: Optional[str] = None,
        identity: Optional[str] = None,
        password: Optional[str] = None,
        auth_collection: str = '_superusers',
        per_page: int = DEFAULT_PER_PAGE,
        request_timeout: Optional[float] = None,
        verify_ssl: bool = True,
        use_system_ca: bool = False
    ):
        """
        Initialize backend client.

        Args:
            base_url: Backend base URL (e.g. "https://cms.example.com")
            token: Static auth token sent as the Authorization header
            identity: Identity for password auth (used when no token is given)
            password: Password for password auth
            auth_collection: Auth collection for password auth
            per_page: Page size for list requests
            request_timeout: Total timeout per request in seconds; None waits forever
            verify_ssl: Whether to verify TLS certificates
            use_system_ca: Verify against the operating system trust store
        """
        if not base_url:
            raise BackendUnavailable("Backend URL is not configured (set BACKEND_URL)")

        self.base_url = base_url.rstrip('/')
        self.token = token or None
        self.identity = identity or None
        self.password = password or None
        self.auth_collection = auth_collection
        self.per_page = per_page
        self.request_timeout = request_timeout
        self.verify_ssl = verify_ssl
        self.use_system_ca = use_system_ca

        self._session: Optional[aiohttp.ClientSession] = None
        self._auth_lock = asyncio.Lock()
        self._authenticated = self.token is not None or self.identity is None

        self.stats = {
            'requests': 0,
            'records': 0,
            'files': 0,
        }

        if not verify_ssl:
            logger.warning("SSL verification disabled - this is insecure!")

        logger.debug(f"Backend client configured for {self.base_url} (per_page={per_page})")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'BackendClient':
        """
        Initialize backend client from configuration dictionary.

        Args:
            config: Configuration dictionary with a backend section

        Returns:
            BackendClient instance
        """
        backend = config.get('backend', {})
        return cls(
            base_url=backend.get('url'),
            token=backend.get('token'),
            identity=backend.get('identity'),
            password=backend.get('password'),
            auth_collection=backend.get('auth_collection', '_superusers'),
            per_page=backend.get('per_page', DEFAULT_PER_PAGE),
            request_timeout=backend.get('request_timeout'),
            verify_ssl=backend.get('verify_ssl', True),
            use_system_ca=backend.get('use_system_ca', False)
        )

    async def __aenter__(self) -> 'BackendClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(ssl=self._ssl_context()),
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
        return self._session

    def _ssl_context(self):
        if not self.verify_ssl:
            return False
        if self.use_system_ca:
            logger.info("Using system CA certificate store")
            return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        return None

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = self.token
        return headers

    async def _ensure_authenticated(self) -> None:
        """Exchange identity and password for a token once per client."""
        if self._authenticated:
            return
        async with self._auth_lock:
            if self._authenticated:
                return
            if not self.password:
                raise ConfigurationError("backend.password is required when backend.identity is set")

            url = f"{self.base_url}/api/collections/{quote(self.auth_collection)}/auth-with-password"
            session = await self._get_session()
            try:
                async with session.post(url, json={'identity': self.identity, 'password': self.password}) as response:
                    self.stats['requests'] += 1
                    if response.status >= 400:
                        raise BackendUnavailable("Authentication rejected", url=url, status=response.status)
                    data = await response.json()
            except aiohttp.ClientError as e:
                raise BackendUnavailable(f"Authentication request failed: {e}", url=url) from e
            except ValueError as e:
                raise BackendUnavailable(f"Authentication response is not JSON: {e}", url=url) from e

            token = data.get('token') if isinstance(data, dict) else None
            if not token:
                raise BackendUnavailable("Authentication response carried no token", url=url)
            self.token = token
            self._authenticated = True
            logger.info(f"Authenticated against {self.auth_collection} as {self.identity}")

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET a JSON object.

        Raises:
            BackendUnavailable: On transport errors, non-2xx responses or non-object payloads
        """
        await self._ensure_authenticated()
        session = await self._get_session()
        logger.debug(f"API Request: GET {url} {params}")

        try:
            async with session.get(url, params=params, headers=self._headers()) as response:
                self.stats['requests'] += 1
                if response.status >= 300:
                    body = (await response.text())[:500]
                    logger.error(f"HTTP Error {response.status}: GET {url} - {body}")
                    raise BackendUnavailable("Backend request failed", url=url, status=response.status)
                data = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.error(f"Request error: GET {url} - {e}")
            raise BackendUnavailable(f"Backend unreachable: {e}", url=url) from e
        except asyncio.TimeoutError as e:
            logger.error(f"Request timeout after {self.request_timeout}s: GET {url}")
            raise BackendUnavailable("Backend request timed out", url=url) from e
        except ValueError as e:
            raise BackendUnavailable(f"Backend returned invalid JSON: {e}", url=url) from e

        if not isinstance(data, dict):
            raise BackendUnavailable("Backend returned an unexpected payload", url=url)
        return data

    async def fetch_all(
        self,
        collection: str,
        filter: Optional[str] = None,
        sort: Optional[str] = None,
        expand: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch every record of a collection, following pagination.

        Args:
            collection: Collection name
            filter: Optional backend filter expression
            sort: Optional sort expression (e.g. "order,-created")
            expand: Optional relations to expand

        Returns:
            Records in backend order

        Raises:
            BackendUnavailable: If any page request fails
        """
        url = f"{self.base_url}/api/collections/{quote(collection)}/records"
        params: Dict[str, Any] = {'perPage': self.per_page}
        if filter:
            params['filter'] = filter
        if sort:
            params['sort'] = sort
        if expand:
            params['expand'] = expand

        records: List[Dict[str, Any]] = []
        page = 1
        while True:
            data = await self._get_json(url, dict(params, page=page))
            items = data.get('items')
            if not isinstance(items, list):
                raise BackendUnavailable(f"Collection '{collection}' response has no item list", url=url)
            records.extend(items)

            total_pages = data.get('totalPages') or 1
            if page >= total_pages or not items:
                break
            page += 1

        self.stats['records'] += len(records)
        logger.debug(f"Fetched {len(records)} records from '{collection}'")
        return records

    async def fetch_by_field(
        self,
        collection: str,
        field: str,
        value: Any,
        sort: Optional[str] = None,
        expand: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Fetch records whose ``field`` equals ``value``."""
        return await self.fetch_all(collection, filter=equals_filter(field, value), sort=sort, expand=expand)

    async def fetch_first(
        self,
        collection: str,
        filter: Optional[str] = None,
        sort: Optional[str] = None,
        expand: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """First record of a collection, or None when it is empty (singleton collections)."""
        records = await self.fetch_all(collection, filter=filter, sort=sort, expand=expand)
        return records[0] if records else None

    def file_url(self, collection: str, record_id: str, filename: str) -> str:
        """Backend URL of a stored file."""
        return f"{self.base_url}/api/files/{quote(collection)}/{quote(record_id)}/{quote(filename)}"

    async def download_file(self, collection: str, record_id: str, filename: str) -> Tuple[int, Optional[bytes]]:
        """
        Download a stored file.

        Returns:
            Tuple of (HTTP status, body); body is None for non-2xx responses

        Raises:
            BackendUnavailable: If no response was received
        """
        await self._ensure_authenticated()
        url = self.file_url(collection, record_id, filename)
        session = await self._get_session()
        try:
            async with session.get(url, headers=self._headers()) as response:
                self.stats['requests'] += 1
                if not 200 <= response.status < 300:
                    return response.status, None
                body = await response.read()
        except aiohttp.ClientError as e:
            raise BackendUnavailable(f"File download failed: {e}", url=url) from e
        except asyncio.TimeoutError as e:
            raise BackendUnavailable("File download timed out", url=url) from e

        self.stats['files'] += 1
        return response.status, body


def equals_filter(field: str, value: Any) -> str:
    """Backend filter expression matching ``field`` to ``value``."""
    if isinstance(value, bool):
        return f"{field}={'true' if value else 'false'}"
    text = str(value).replace('\\', '\\\\').replace('"', '\\"')
    return f'{field}="{text}"'


__all__ = ['BackendClient', 'equals_filter']
