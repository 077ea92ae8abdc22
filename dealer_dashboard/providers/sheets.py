from __future__ import annotations

import time

import httpx
import structlog

log = structlog.get_logger()


class SheetFetchError(RuntimeError):
    pass


class SheetSource:
    """Published spreadsheet CSV export.

    Each request carries a ``_=<epoch ms>`` parameter so intermediate caches
    never serve a stale export. Failures are not retried here; the next poll
    tick or an explicit refresh is the retry.
    """

    def __init__(self, csv_url: str, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self.csv_url = csv_url
        self.timeout = timeout
        self.transport = transport

    def request_url(self) -> httpx.URL:
        # the export URL carries its own query (format=csv); add to it
        return httpx.URL(self.csv_url).copy_merge_params({"_": str(int(time.time() * 1000))})

    async def fetch_text(self) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport, follow_redirects=True) as client:
                r = await client.get(self.request_url())
        except httpx.HTTPError as e:
            log.warning("sheet_fetch_failed", url=self.csv_url, err=str(e))
            raise SheetFetchError(f"sheet fetch failed: {e}") from e
        if r.status_code != 200:
            log.warning("sheet_fetch_failed", url=self.csv_url, status=r.status_code, body=r.text[:500])
            raise SheetFetchError(f"sheet_status_{r.status_code}")
        return r.text
