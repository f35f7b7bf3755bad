"""Open Food Facts API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class OpenFoodFactsClient(Protocol):
    """Interface for Open Food Facts interactions."""

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode and return raw API data."""

    async def search_products(
        self, query: str, language: str, page_size: int = 10
    ) -> dict[str, object]:
        """Search products by free text and return raw API data."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 8.0

    @classmethod
    def create(
        cls, base_url: str, user_agent: str, timeout_seconds: float = 8.0
    ) -> "HttpxOpenFoodFactsClient":
        """Create a client with a managed httpx session identifying this app."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(headers={"User-Agent": user_agent}),
            timeout_seconds=timeout_seconds,
        )

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode."""
        url = f"{self.base_url}/api/v0/product/{barcode}.json"
        response = await self.http_client.get(url, timeout=self.timeout_seconds)
        # OFF answers unknown barcodes with a status flag, sometimes as a 404.
        if response.status_code == httpx.codes.NOT_FOUND:
            return {"status": 0}
        response.raise_for_status()
        return response.json()

    async def search_products(
        self, query: str, language: str, page_size: int = 10
    ) -> dict[str, object]:
        """Search products by free text."""
        url = f"{self.base_url}/cgi/search.pl"
        response = await self.http_client.get(
            url,
            params={
                "search_terms": query,
                "search_simple": 1,
                "action": "process",
                "json": 1,
                "page_size": page_size,
                "lang": language,
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
