"""HTTP feed resource over the NuGet V3 flat container (PackageBaseAddress)."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import aiohttp
from semantic_version import Version

from constants import Constants
from errors import PackageNotFoundError, SourceUnavailableError
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from versioning.cache import TTLCache
from versioning.models import normalize_version, parse_version, version_key
from .manifest import Manifest, read_manifest
from .source import FindPackageByIdResource

logger = logging.getLogger(__name__)

PACKAGE_BASE_ADDRESS_TYPE = "PackageBaseAddress/3.0.0"
HEADERS_JSON = {"Accept": "application/json"}


def _log_http_pre(url: str) -> None:
    """Debug-log outbound HTTP request for the feed."""
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP request",
            extra=extra_context(
                event="http_request",
                component="http_feed",
                action="GET",
                target=safe_url(url),
                package_manager="nuget",
            ),
        )


def _find_base_address(service_index: Dict[str, Any]) -> Optional[str]:
    """Return the flat container base URL from a V3 service index."""
    for resource in service_index.get("resources", []):
        types = resource.get("@type")
        if isinstance(types, str):
            types = [types]
        if PACKAGE_BASE_ADDRESS_TYPE in (types or []):
            base = resource.get("@id")
            if base:
                return base if base.endswith("/") else base + "/"
    return None


class HttpFindPackageByIdResource(FindPackageByIdResource):
    """Find-by-id resource backed by an HTTP V3 feed.

    ``source`` is either a service index URL (ending in ``.json``) or the
    flat container base address itself.
    """

    def __init__(
        self,
        source: str,
        timeout: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__()
        self._source = source
        self._timeout = aiohttp.ClientTimeout(total=timeout or Constants.REQUEST_TIMEOUT)
        self._session = session
        self._owns_session = session is None
        self._base_address: Optional[str] = None
        self._cache = TTLCache(default_ttl=Constants.FEED_CACHE_TTL_SEC)

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=16)
            self._session = aiohttp.ClientSession(timeout=self._timeout, connector=connector)
            self._owns_session = True

    async def close(self) -> None:
        """Stop the HTTP session if this resource created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def _get(self, url: str, headers: Optional[Dict[str, str]] = None) -> Tuple[int, bytes]:
        """GET ``url``; returns (status, body) with 404 passed through as a status."""
        await self.start()
        assert self._session is not None
        _log_http_pre(url)
        try:
            async with self._session.get(url, headers=headers) as response:
                if response.status == 404:
                    return 404, b""
                if response.status >= 400:
                    raise SourceUnavailableError(
                        f"HTTP {response.status} from {safe_url(url)}", source=self._source
                    )
                return response.status, await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SourceUnavailableError(
                f"Unable to reach {safe_url(url)}: {e}", source=self._source
            ) from e

    async def _get_json(self, url: str) -> Optional[Any]:
        status, body = await self._get(url, headers=HEADERS_JSON)
        if status == 404:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise SourceUnavailableError(
                f"Invalid JSON from {safe_url(url)}", source=self._source
            ) from e

    async def _get_base_address(self) -> str:
        if self._base_address is not None:
            return self._base_address
        if not self._source.lower().endswith(".json"):
            self._base_address = self._source if self._source.endswith("/") else self._source + "/"
            return self._base_address

        service_index = await self._get_json(self._source)
        if not isinstance(service_index, dict):
            raise SourceUnavailableError(
                f"Service index not found at {safe_url(self._source)}", source=self._source
            )
        base = _find_base_address(service_index)
        if base is None:
            raise SourceUnavailableError(
                f"{safe_url(self._source)} has no {PACKAGE_BASE_ADDRESS_TYPE} resource",
                source=self._source,
            )
        self._base_address = base
        return base

    async def _package_url(self, package_id: str, version: Version, extension: str) -> str:
        base = await self._get_base_address()
        lower_id = package_id.lower()
        lower_version = normalize_version(version).lower()
        if extension == Constants.MANIFEST_EXTENSION:
            file_name = f"{lower_id}{extension}"
        else:
            file_name = f"{lower_id}.{lower_version}{extension}"
        return f"{base}{lower_id}/{lower_version}/{file_name}"

    async def get_all_versions(self, package_id: str) -> List[Version]:
        cache_key = f"versions:{package_id.lower()}"
        if not self.no_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        base = await self._get_base_address()
        data = await self._get_json(f"{base}{package_id.lower()}/index.json")
        versions: List[Version] = []
        if isinstance(data, dict):
            for raw in data.get("versions", []):
                try:
                    versions.append(parse_version(raw))
                except ValueError:
                    self.logger.debug("Skipping unparsable version %r of %s", raw, package_id)
        versions.sort(key=version_key)

        if not self.no_cache:
            self._cache.set(cache_key, versions)
        return versions

    async def get_manifest(self, package_id: str, version: Version) -> Manifest:
        cache_key = f"manifest:{package_id.lower()}:{normalize_version(version).lower()}"
        if not self.no_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        url = await self._package_url(package_id, version, Constants.MANIFEST_EXTENSION)
        status, body = await self._get(url)
        if status == 404:
            raise PackageNotFoundError(
                f"{package_id} {normalize_version(version)} not found in {safe_url(self._source)}"
            )
        manifest = read_manifest(body)

        if not self.no_cache:
            self._cache.set(cache_key, manifest)
        return manifest

    async def iter_package(self, package_id: str, version: Version) -> AsyncIterator[bytes]:
        url = await self._package_url(package_id, version, Constants.PACKAGE_EXTENSION)
        await self.start()
        assert self._session is not None
        _log_http_pre(url)
        try:
            async with self._session.get(url) as response:
                if response.status == 404:
                    raise PackageNotFoundError(
                        f"{package_id} {normalize_version(version)} not found in {safe_url(self._source)}"
                    )
                if response.status >= 400:
                    raise SourceUnavailableError(
                        f"HTTP {response.status} from {safe_url(url)}", source=self._source
                    )
                async for chunk in response.content.iter_chunked(Constants.COPY_BUFFER_SIZE):
                    yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SourceUnavailableError(
                f"Unable to download {safe_url(url)}: {e}", source=self._source
            ) from e
