import unittest
from datetime import datetime, timezone

from dealer_dashboard.pipeline.extract import extract_records, parse_count, service_included
from dealer_dashboard.pipeline.models import ActiveDealerRecord
from dealer_dashboard.pipeline.tabular import parse_csv

HEADER = "A-Dealers,A-Service,A-Zone,Active Users,E-Dealers,E-Service,E-Zone,Expired Users"


class ServiceRuleTests(unittest.TestCase):
    def test_included_tokens(self):
        self.assertTrue(service_included("TES Gold"))
        self.assertTrue(service_included("mcsol premium"))

    def test_exclusion_beats_inclusion(self):
        self.assertFalse(service_included("Zong TES"))
        self.assertFalse(service_included("Zong Basic"))

    def test_unrelated_service(self):
        self.assertFalse(service_included("Fiber"))


class ParseCountTests(unittest.TestCase):
    def test_leading_integer(self):
        self.assertEqual(parse_count("42"), 42)
        self.assertEqual(parse_count(" 17 users"), 17)

    def test_non_numeric_and_empty(self):
        self.assertEqual(parse_count("n/a"), 0)
        self.assertEqual(parse_count(""), 0)

    def test_negative_clamped(self):
        self.assertEqual(parse_count("-5"), 0)


class ExtractRecordsTests(unittest.TestCase):
    def test_active_only_sheet(self):
        rows = parse_csv("A-Dealers,A-Service,A-Zone,Active Users\nAcme,TES Gold,North,42")
        active, expired = extract_records(rows)
        self.assertEqual(active, [ActiveDealerRecord("Acme", "TES Gold", "North", 42)])
        self.assertEqual(expired, [])
        self.assertEqual(
            active[0].to_payload(),
            {"dealer": "Acme", "service": "TES Gold", "zone": "North", "activeUsers": 42},
        )

    def test_excluded_service_yields_nothing(self):
        rows = parse_csv("A-Dealers,A-Service,A-Zone,Active Users\nAcme,Zong Basic,North,42")
        self.assertEqual(extract_records(rows), ([], []))

    def test_sides_filtered_independently(self):
        rows = parse_csv(HEADER + "\nAcme,TES Gold,North,42,Beta,Zong X,South,7")
        active, expired = extract_records(rows)
        self.assertEqual(len(active), 1)
        self.assertEqual(expired, [])

    def test_short_and_blank_rows_dropped(self):
        text = "\n".join([HEADER, "Acme,TES,North,1", "Acme,TES,North,1,Beta,McSOL,South,3", ",,,,,,,", ""])
        active, expired = extract_records(parse_csv(text))
        self.assertEqual(len(active), 1)
        self.assertEqual(expired[0].dealer, "Beta")
        self.assertEqual(expired[0].expired_users, 3)

    def test_empty_dealer_skips_side(self):
        rows = parse_csv(HEADER + "\n,TES,North,5,Beta,McSOL,South,3")
        active, expired = extract_records(rows)
        self.assertEqual(active, [])
        self.assertEqual(len(expired), 1)

    def test_header_only_or_empty(self):
        self.assertEqual(extract_records(parse_csv(HEADER)), ([], []))
        self.assertEqual(extract_records([]), ([], []))

    def test_unmapped_sheet_yields_nothing(self):
        rows = parse_csv("Name,Region\nAcme,North")
        self.assertEqual(extract_records(rows), ([], []))

    def test_observed_at_stamped(self):
        ts = datetime(2026, 3, 1, tzinfo=timezone.utc)
        rows = parse_csv("A-Dealers,A-Service,A-Zone,Active Users\nAcme,TES,North,2")
        active, _ = extract_records(rows, observed_at=ts)
        self.assertEqual(active[0].observed_at, ts)


if __name__ == "__main__":
    unittest.main()
