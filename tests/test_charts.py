import unittest

from dealer_dashboard.pipeline.models import ExpiredDealerRecord
from dealer_dashboard.services.charts import dealer_label, generate_expired_chart


class ChartTests(unittest.TestCase):
    def test_label_truncation(self):
        self.assertEqual(dealer_label("Short Name"), "Short Name")
        self.assertEqual(dealer_label("A Very Long Dealer Name"), "A Very Long ...")

    def test_empty_records_no_chart(self):
        self.assertIsNone(generate_expired_chart([]))

    def test_png_rendered(self):
        png = generate_expired_chart([
            ExpiredDealerRecord("Acme", "TES Gold", "North", 25),
            ExpiredDealerRecord("Beta", "McSOL", "South", 5),
        ])
        self.assertTrue(png.startswith(b"\x89PNG"))


if __name__ == "__main__":
    unittest.main()
