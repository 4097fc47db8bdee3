"""Shared HTTP plumbing for the playlist provider clients."""

import logging
from abc import abstractmethod
from collections.abc import AsyncIterator, Iterator, Sequence
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from multitune.domain.dtos import ItemDetails
from multitune.domain.exceptions import ProviderError, ProviderUnauthorizedError
from multitune.domain.ports import IProviderClient

logger = logging.getLogger(__name__)

# Both YouTube (videos?id=) and Spotify (tracks?ids=) cap detail lookups at 50 IDs.
MAX_IDS_PER_REQUEST = 50
PAGE_SIZE = 50

PageT = TypeVar("PageT", bound=BaseModel)


def chunked(
    values: Sequence[str], size: int = MAX_IDS_PER_REQUEST
) -> Iterator[list[str]]:
    """Split values into consecutive chunks of at most size entries."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(values), size):
        yield list(values[start : start + size])


def decode_payload(response: httpx.Response) -> Any:
    """Return the response body as JSON if possible, else as text."""
    try:
        return response.json()
    except ValueError:
        return response.text


class BaseProviderClient(IProviderClient):
    """httpx-based client with error mapping, pagination and ID chunking.

    Subclasses supply the endpoints and how one page links to the next; everything that
    talks HTTP lives here so both providers fail the same way.
    """

    # Hey future me - like every other client here, the httpx client is created LAZILY in
    # _get_client(). Creating httpx.AsyncClient in __init__ binds it to whatever loop is
    # running at import/DI time and gives you weird "attached to a different loop" errors.
    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseProviderClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # Listen up - this is the ONLY place where provider HTTP errors become domain errors:
    #   401            → ProviderUnauthorizedError (the sync engine refreshes and retries once)
    #   other non-2xx  → ProviderError with the raw upstream body as payload (never retried)
    #   network errors → ProviderError without status
    # Don't add retries here. A failed page aborts the whole listing on purpose, partial
    # listings would make the sync engine think items were never there.
    async def _get(
        self,
        url: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """GET a provider endpoint and return the decoded JSON body."""
        client = await self._get_client()
        try:
            response = await client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning("%s request to %s failed: %s", self.provider.value, url, e)
            raise ProviderError(
                f"{self.provider.value} request failed: {e}", payload=str(e)
            ) from e

        if response.status_code == 401:
            raise ProviderUnauthorizedError(
                f"{self.provider.value} rejected the access token",
                status_code=401,
                payload=decode_payload(response),
            )
        if not response.is_success:
            payload = decode_payload(response)
            logger.warning(
                "%s API error %s for %s: %s",
                self.provider.value,
                response.status_code,
                url,
                payload,
            )
            raise ProviderError(
                f"{self.provider.value} API error {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.provider.value} returned a non-JSON body",
                status_code=response.status_code,
                payload=response.text,
            ) from e

    def _parse(self, model: type[PageT], payload: Any) -> PageT:
        """Validate a JSON body; anything but an object is a provider error."""
        if not isinstance(payload, dict):
            raise ProviderError(
                f"{self.provider.value} returned an unexpected body", payload=payload
            )
        return model.model_validate(payload)

    async def _paginate(
        self,
        url: str,
        access_token: str,
        params: dict[str, Any] | None,
        page_model: type[PageT],
    ) -> AsyncIterator[PageT]:
        """Yield validated pages until the provider stops handing out a cursor."""
        next_request: tuple[str, dict[str, Any] | None] | None = (url, params)
        pages = 0
        while next_request is not None:
            page_url, page_params = next_request
            payload = await self._get(page_url, access_token, page_params)
            page = self._parse(page_model, payload)
            pages += 1
            yield page
            next_request = self._next_page(url, params, page)
        logger.debug("%s: fetched %d page(s) from %s", self.provider.value, pages, url)

    @abstractmethod
    def _next_page(
        self, url: str, params: dict[str, Any] | None, page: Any
    ) -> tuple[str, dict[str, Any] | None] | None:
        """Build the request for the page after `page`, or None on the last page."""

    async def get_item_details(
        self, access_token: str, item_ids: Sequence[str]
    ) -> dict[str, ItemDetails]:
        """Resolve details for item_ids, at most MAX_IDS_PER_REQUEST per call.

        IDs the provider doesn't return (deleted, private, region-locked) are simply
        absent from the result.
        """
        unique_ids = list(dict.fromkeys(item_ids))
        details: dict[str, ItemDetails] = {}
        for chunk in chunked(unique_ids, MAX_IDS_PER_REQUEST):
            details.update(await self._fetch_details(access_token, chunk))
        return details

    @abstractmethod
    async def _fetch_details(
        self, access_token: str, item_ids: list[str]
    ) -> dict[str, ItemDetails]:
        """Fetch details for one chunk of at most MAX_IDS_PER_REQUEST IDs."""
