import json
import unittest

from dealer_dashboard.pipeline.models import ExpiredDealerRecord
from dealer_dashboard.pipeline.validation import (
    MAX_REASONS,
    BlobError,
    BlobOk,
    check_record_blob,
    decode_records,
    is_valid_active_data,
    is_valid_expired_data,
    records_or_empty,
)


class BlobValidationTests(unittest.TestCase):
    def test_empty_list_is_valid(self):
        self.assertTrue(is_valid_active_data([]))
        self.assertTrue(is_valid_expired_data([]))

    def test_valid_records(self):
        blob = [{"dealer": "A", "service": "TES", "zone": "N", "activeUsers": 4}]
        self.assertTrue(is_valid_active_data(blob))
        self.assertFalse(is_valid_expired_data(blob))

    def test_not_a_list(self):
        ok, reasons = check_record_blob({"dealer": "A"}, "active")
        self.assertFalse(ok)
        self.assertEqual(reasons, ["active data is not a list"])

    def test_missing_and_wrong_typed_fields(self):
        blob = [
            {"dealer": "A", "service": "TES", "expiredUsers": 1},
            {"dealer": 7, "service": "TES", "zone": "N", "expiredUsers": "3"},
            {"dealer": "C", "service": "TES", "zone": "N", "expiredUsers": True},
            "nope",
        ]
        ok, reasons = check_record_blob(blob, "expired")
        self.assertFalse(ok)
        self.assertIn("[0] missing zone", reasons)
        self.assertIn("[1].dealer is not a string", reasons)
        self.assertIn("[1].expiredUsers is not a finite number", reasons)
        self.assertIn("[2].expiredUsers is not a finite number", reasons)
        self.assertIn("[3] is not an object", reasons)

    def test_non_finite_counts_rejected(self):
        blob = [
            {"dealer": "A", "service": "TES", "zone": "N", "activeUsers": float("nan")},
            {"dealer": "B", "service": "TES", "zone": "N", "activeUsers": float("inf")},
        ]
        ok, reasons = check_record_blob(blob, "active")
        self.assertFalse(ok)
        self.assertEqual(reasons, ["[0].activeUsers is not a finite number", "[1].activeUsers is not a finite number"])

    def test_reasons_capped(self):
        ok, reasons = check_record_blob(["x"] * 50, "active")
        self.assertFalse(ok)
        self.assertEqual(len(reasons), MAX_REASONS + 1)
        self.assertEqual(reasons[-1], "...")


class DecodeTests(unittest.TestCase):
    def test_decode_json_text(self):
        text = json.dumps([{"dealer": "A", "service": "TES", "zone": "N", "expiredUsers": 25}])
        result = decode_records(text, "expired")
        self.assertIsInstance(result, BlobOk)
        self.assertEqual(result.records, [ExpiredDealerRecord("A", "TES", "N", 25)])

    def test_decode_bad_json(self):
        result = decode_records("{not json", "active")
        self.assertIsInstance(result, BlobError)
        self.assertIn("not valid JSON", result.reasons[0])

    def test_decode_nan_and_infinity_text(self):
        for literal in ("NaN", "Infinity", "-Infinity"):
            text = '[{"dealer": "A", "service": "TES", "zone": "N", "activeUsers": ' + literal + "}]"
            result = decode_records(text, "active")
            self.assertIsInstance(result, BlobError)

    def test_records_or_empty(self):
        records, reasons = records_or_empty([{"dealer": "A"}], "active")
        self.assertEqual(records, [])
        self.assertTrue(reasons)


if __name__ == "__main__":
    unittest.main()
