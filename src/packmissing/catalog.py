"""Client for the pack catalog service and the data it supplies."""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple

import httpx

from .errors import CatalogUnavailableError

logger = logging.getLogger(__name__)


class RepositoryCoordinates(NamedTuple):
    """Location of a pack's repository for one edition."""
    org: str
    repo: str

    @property
    def url(self) -> str:
        return f"https://github.com/{self.org}/{self.repo}.git"


@dataclass(frozen=True)
class PackReference:
    """A content pack and the repository backing each of its editions."""
    key: str
    name: str
    repositories: Mapping[str, RepositoryCoordinates] = field(default_factory=lambda: MappingProxyType({}))

    def repository_for(self, edition: str) -> RepositoryCoordinates | None:
        return self.repositories.get(edition)

    @classmethod
    def from_dict(cls, key: str, data: Mapping[str, Any]) -> 'PackReference':
        """Load from a catalog pack entry ({"name": ..., "github": {edition: {"org", "repo"}}})."""
        github = data.get('github') or {}
        repositories = {
            edition: RepositoryCoordinates(info['org'], info['repo'])
            for edition, info in github.items()
            if info
        }
        return cls(key, data.get('name', key), MappingProxyType(repositories))


class CatalogClient:
    """Async client for the catalog service.

    Every request is made fresh; nothing is cached between calls. Transport failures,
    error statuses and malformed bodies are all reported as CatalogUnavailableError.

    Example:
        async with CatalogClient("https://api.example.net/v2/") as catalog:
            editions = await catalog.get_editions()
    """

    def __init__(self, base_url: str, timeout: float | None = None, transport: httpx.AsyncBaseTransport | None = None):
        if not base_url.endswith('/'):
            base_url += '/'

        self._base_url = base_url
        kwargs: dict[str, Any] = {'base_url': base_url, 'transport': transport}
        if timeout is not None:
            kwargs['timeout'] = timeout
        self._client = httpx.AsyncClient(**kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self._client.aclose()

    @property
    def base_url(self) -> str:
        return self._base_url

    async def get_packs(self) -> dict[str, PackReference]:
        data = await self._get_json('packs/raw', dict)
        return {key: PackReference.from_dict(key, entry) for key, entry in data.items()}

    async def get_editions(self) -> list[str]:
        return await self._get_json('textures/editions', list)

    async def get_versions(self, edition: str) -> list[str]:
        """Known versions of an edition, most recent first."""
        return await self._get_json(f'versions/edition/{edition}', list)

    async def get_setting(self, key: str) -> Any:
        return await self._get_json(f'settings/{key}')

    async def _get_json(self, path: str, expected_type: type | None = None) -> Any:
        try:
            response = await self._client.get(path)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise CatalogUnavailableError(f"Catalog request {self._base_url}{path} failed: {e}") from e
        except ValueError as e:
            raise CatalogUnavailableError(f"Catalog returned malformed JSON for {self._base_url}{path}") from e

        if expected_type is not None and not isinstance(data, expected_type):
            raise CatalogUnavailableError(
                f"Catalog returned {type(data).__name__} for {self._base_url}{path}, "
                f"expected {expected_type.__name__}")

        logger.debug(f"Fetched {self._base_url}{path}")
        return data
