import asyncio
import unittest

import httpx

from dealer_dashboard.config import DEFAULT_SHEET_CSV_URL
from dealer_dashboard.providers.sheets import SheetFetchError, SheetSource

URL = "https://sheets.example.test/export?format=csv"


class SheetSourceTests(unittest.TestCase):
    def test_fetch_adds_cache_buster(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, text="A-Dealers\nAcme")

        source = SheetSource(URL, transport=httpx.MockTransport(handler))
        text = asyncio.run(source.fetch_text())
        self.assertEqual(text, "A-Dealers\nAcme")
        self.assertEqual(seen[0].params["format"], "csv")
        self.assertTrue(seen[0].params["_"].isdigit())

    def test_default_export_url_keeps_format(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, text="")

        source = SheetSource(DEFAULT_SHEET_CSV_URL, transport=httpx.MockTransport(handler))
        asyncio.run(source.fetch_text())
        self.assertTrue(seen[0].startswith(DEFAULT_SHEET_CSV_URL + "&_="))

    def test_non_200_raises(self):
        source = SheetSource(URL, transport=httpx.MockTransport(lambda request: httpx.Response(404, text="gone")))
        with self.assertRaises(SheetFetchError) as ctx:
            asyncio.run(source.fetch_text())
        self.assertEqual(str(ctx.exception), "sheet_status_404")

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        source = SheetSource(URL, transport=httpx.MockTransport(handler))
        with self.assertRaises(SheetFetchError):
            asyncio.run(source.fetch_text())


if __name__ == "__main__":
    unittest.main()
