"""Registry fetcher — retrieve one snapshot of the block catalogue."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from mexty.config import SyncConfig
from mexty.errors import FetchError, MalformedRegistryError
from mexty.registry.models import RegistrySnapshot

logger = logging.getLogger(__name__)


class RegistryFetcher:
    """Fetches the registry from the API described by a :class:`SyncConfig`."""

    def __init__(
        self,
        config: SyncConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def fetch(self) -> RegistrySnapshot:
        """Return the current registry snapshot.

        Raises:
            FetchError: On transport failure, a non-2xx status, or a body
                that is not a registry document.
        """
        url = self.config.registry_url
        logger.info("Fetching registry from %s", url)

        try:
            with httpx.Client(
                timeout=self.config.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                resp = client.get(url)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise FetchError(
                f"Server responded with {status}: {exc.response.reason_phrase}",
                status_code=status,
            ) from exc
        except httpx.RequestError as exc:
            raise FetchError(f"Could not reach registry at {url}: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"Registry response is not valid JSON: {exc}") from exc

        try:
            snapshot = RegistrySnapshot.from_dict(data)
        except MalformedRegistryError as exc:
            raise FetchError(f"Malformed registry response: {exc}") from exc

        logger.debug(
            "Fetched %d component(s), %d author namespace(s)",
            snapshot.component_count,
            snapshot.author_count,
        )
        return snapshot
