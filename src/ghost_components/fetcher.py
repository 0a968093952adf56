"""Registry fetcher - Look up component manifests over HTTP.

Registry layout: ``{registry_url}/components/{name}.json`` serving either a
bare manifest or a packument (``dist-tags`` + ``versions``).

Per IMPLEMENTATION_PHILOSOPHY: Fail fast. A missing component is a
ComponentNotFoundError so the resolver can move on to the next registry.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from .exceptions import ComponentNotFoundError
from .exceptions import RegistryFetchError
from .schema import ComponentManifest

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def component_url(registry_url: str, name: str) -> str:
    """Build the manifest URL for a component."""
    return f"{registry_url.rstrip('/')}/components/{name}.json"


def _select_manifest(data: Any, name: str) -> Any:
    """Pick the latest manifest out of a packument, or pass a bare manifest through."""
    if not isinstance(data, dict) or "dist-tags" not in data:
        return data

    latest = data["dist-tags"].get("latest")
    manifest = data.get("versions", {}).get(latest)
    if manifest is None:
        raise RegistryFetchError(
            f"Component '{name}' has no manifest for latest version {latest}",
            context={"component": name, "version": latest},
        )
    return manifest


class RegistryFetcher:
    """
    HTTP manifest fetcher (implements ComponentFetcherProtocol).

    Successful lookups are memoized per instance, failures are not.

    Example:
        >>> async with RegistryFetcher() as fetcher:
        ...     manifest = await fetcher.fetch_component("https://registry.example.com", "researcher")
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = DEFAULT_TIMEOUT):
        """Initialize fetcher.

        Args:
            client: Optional app-provided client (not closed by this fetcher)
            timeout: Request timeout in seconds when creating our own client
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._cache: dict[str, ComponentManifest] = {}

    async def __aenter__(self) -> "RegistryFetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_component(self, registry_url: str, name: str) -> ComponentManifest:
        """
        Fetch the latest manifest for a component.

        Args:
            registry_url: Registry base URL
            name: Component name

        Returns:
            Parsed ComponentManifest

        Raises:
            ComponentNotFoundError: Registry answered 404
            RegistryFetchError: Network error, non-404 HTTP error, or unusable payload
        """
        url = component_url(registry_url, name)
        cached = self._cache.get(url)
        if cached is not None:
            return cached

        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise RegistryFetchError(f"Failed to fetch {url}: {e}", context={"url": url}) from e

        if response.status_code == 404:
            raise ComponentNotFoundError(f"Not found: {url}", context={"url": url, "component": name})
        if response.is_error:
            raise RegistryFetchError(
                f"Failed to fetch {url}: {response.status_code} {response.reason_phrase}",
                context={"url": url, "status": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RegistryFetchError(f"Invalid JSON at {url}: {e}", context={"url": url}) from e

        try:
            manifest = ComponentManifest.model_validate(_select_manifest(data, name))
        except ValidationError as e:
            raise RegistryFetchError(f"Invalid component manifest for '{name}': {e}", context={"url": url}) from e

        logger.debug(f"Fetched manifest for '{name}' from {url}")
        self._cache[url] = manifest
        return manifest
