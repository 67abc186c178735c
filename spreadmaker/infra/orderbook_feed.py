"""
Async HTTP client for the public order book endpoint.

The endpoint answers a JSON array of [id, price, signedAmount] rows.
Numbers are decoded straight to Decimal.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import List, Optional

import httpx

from spreadmaker.core.errors import FeedUnavailable, MalformedSnapshot
from spreadmaker.core.models import RawMarketEntry
from spreadmaker.strategy.spread import parse_snapshot


class OrderbookFeed:
    def __init__(self, url: str, timeout: float = 4.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.url = url
        # If a shared client is passed in, we won't close it in close(); otherwise we own the client.
        if client is not None:
            self.client = client
            self._owns_client = False
        else:
            self.client = httpx.AsyncClient(timeout=timeout)
            self._owns_client = True

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def fetch(self) -> List[RawMarketEntry]:
        """
        Fetch one order book snapshot.

        Raises:
            FeedUnavailable: transport error or non-200 status
            MalformedSnapshot: body is not an array of 3-element rows
        """
        try:
            resp = await self.client.get(self.url)
        except httpx.HTTPError as exc:
            raise FeedUnavailable(f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code != 200:
            raise FeedUnavailable("order book request failed", status=resp.status_code)

        try:
            rows = json.loads(resp.text, parse_float=Decimal)
        except json.JSONDecodeError as exc:
            raise MalformedSnapshot(f"invalid JSON body: {exc}") from exc
        return parse_snapshot(rows)

    async def __call__(self) -> List[RawMarketEntry]:
        return await self.fetch()
