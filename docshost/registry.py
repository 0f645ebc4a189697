"""Client for the package registry's public API.

Used for owner and release metadata that the docs database does not hold.
All lookups are best effort: failures are logged as warnings and replaced
with empty/default values, so a registry outage never breaks a page.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field, ValidationError

from docshost.config import get_settings
from docshost.versions import parse_version

logger = logging.getLogger(__name__)

APP_USER_AGENT = "docshost (+https://github.com/docshost/docshost)"


class RegistryError(Exception):
    """Raised internally for unusable registry responses."""


@dataclass
class CrateOwner:
    avatar: str = ""
    email: str = ""
    login: str = ""
    name: str = ""


@dataclass
class CrateData:
    owners: list[CrateOwner] = field(default_factory=list)


@dataclass
class ReleaseData:
    release_time: datetime
    yanked: bool = False
    downloads: int = 0


# ── Wire format ──

class _OwnerData(BaseModel):
    avatar: str | None = None
    email: str | None = None
    login: str | None = None
    name: str | None = None


class _OwnersResponse(BaseModel):
    users: list[_OwnerData]


class _VersionData(BaseModel):
    num: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    yanked: bool = False
    downloads: int = 0


class _VersionsResponse(BaseModel):
    versions: list[_VersionData]


class RegistryApi:
    """Thin async wrapper around ``/api/v1/crates/...`` endpoints."""

    def __init__(
        self,
        api_base: str | None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_base = api_base.rstrip("/") if api_base else None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": APP_USER_AGENT, "Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    def _url(self, *segments: str) -> str:
        if not self.api_base:
            raise RegistryError("registry is missing an api base url")
        return "/".join([self.api_base, *(quote(s, safe="") for s in segments)])

    async def _get_json(self, url: str) -> object:
        resp = await self.client.get(url)
        resp.raise_for_status()
        return resp.json()

    async def get_crate_data(self, name: str) -> CrateData:
        try:
            owners = await self._get_owners(name)
        except (RegistryError, httpx.HTTPError, ValidationError, ValueError) as exc:
            logger.warning("Failed to get owners for %s: %s", name, exc)
            owners = []
        return CrateData(owners=owners)

    async def get_release_data(self, name: str, version: str) -> ReleaseData:
        try:
            return await self._get_release_data(name, version)
        except (RegistryError, httpx.HTTPError, ValidationError, ValueError) as exc:
            logger.warning("Failed to get crate data for %s-%s: %s", name, version, exc)
            return ReleaseData(release_time=datetime.now(timezone.utc))

    async def _get_release_data(self, name: str, version: str) -> ReleaseData:
        """Release time, yanked flag and download count for one version."""
        url = self._url("api", "v1", "crates", name, "versions")
        response = _VersionsResponse.model_validate(await self._get_json(url))

        wanted = parse_version(version)
        for data in response.versions:
            try:
                num = parse_version(data.num)
            except ValueError:
                continue
            if num == wanted:
                return ReleaseData(
                    release_time=data.created_at,
                    yanked=data.yanked,
                    downloads=data.downloads,
                )
        raise RegistryError("Could not find version in response")

    async def _get_owners(self, name: str) -> list[CrateOwner]:
        url = self._url("api", "v1", "crates", name, "owners")
        response = _OwnersResponse.model_validate(await self._get_json(url))
        return [
            CrateOwner(
                avatar=data.avatar or "",
                email=data.email or "",
                login=data.login or "",
                name=data.name or "",
            )
            for data in response.users
            if data.login != ""
        ]


_registry: RegistryApi | None = None


def get_registry() -> RegistryApi:
    """FastAPI dependency returning the shared registry client."""
    global _registry
    if _registry is None:
        settings = get_settings()
        _registry = RegistryApi(settings.registry_api_base, timeout=settings.registry_timeout)
    return _registry


async def close_registry() -> None:
    global _registry
    if _registry is not None:
        await _registry.aclose()
        _registry = None
