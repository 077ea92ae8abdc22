import unittest

from dealer_dashboard.pipeline.aggregate import (
    combine_by_dealer,
    family_totals,
    family_zone_breakdown,
    filter_records,
    high_risk,
    history_summary,
    risk_tier,
    service_family,
    snapshot_totals,
    sort_expired_high_risk_first,
    sort_records,
    unique_zones,
    zone_summaries,
    zone_totals,
)
from dealer_dashboard.pipeline.models import ActiveDealerRecord, ExpiredDealerRecord


def _expired(dealer, service, zone, n):
    return ExpiredDealerRecord(dealer, service, zone, n)


def _active(dealer, service, zone, n):
    return ActiveDealerRecord(dealer, service, zone, n)


class ZoneSummaryTests(unittest.TestCase):
    def test_two_groups_and_one_high_risk(self):
        expired = [_expired("A", "TES", "N", 25), _expired("B", "McSOL", "N", 5)]
        summaries = zone_summaries(expired)
        self.assertEqual(len(summaries), 2)
        self.assertEqual([(s.zone, s.service, s.total_expired) for s in summaries], [("N", "TES", 25), ("N", "McSOL", 5)])
        self.assertEqual(len(high_risk(expired)), 1)

    def test_totals_are_conserved(self):
        active = [_active("A", "TES", "N", 3), _active("B", "TES", "N", 4), _active("C", "McSOL", "S", 10)]
        expired = [_expired("A", "TES", "N", 2), _expired("D", "McSOL", "E", 1)]
        summaries = zone_summaries([*active, *expired])
        self.assertEqual(sum(s.total_active for s in summaries), 17)
        self.assertEqual(sum(s.total_expired for s in summaries), 3)
        merged = [s for s in summaries if (s.zone, s.service) == ("N", "TES")][0]
        self.assertEqual((merged.total_active, merged.total_expired), (7, 2))

    def test_zone_totals_skip_empty_zone(self):
        expired = [_expired("A", "TES", "N", 2), _expired("B", "TES", "", 9), _expired("C", "McSOL", "N", 1)]
        self.assertEqual(zone_totals(expired), {"N": 3})
        self.assertEqual(unique_zones(expired), ["N"])


class FamilyTests(unittest.TestCase):
    def test_service_family(self):
        self.assertEqual(service_family("TES Gold"), "TES")
        self.assertEqual(service_family("McSOL Basic"), "McSOL")

    def test_family_totals(self):
        totals = family_totals([_active("A", "TES", "N", 3)], [_expired("B", "McSOL", "N", 4)])
        self.assertEqual(totals, {"TES": {"active": 3, "expired": 0}, "McSOL": {"active": 0, "expired": 4}})

    def test_family_zone_breakdown_sorted(self):
        expired = [_expired("A", "TES", "S", 2), _expired("B", "TES", "N", 1), _expired("C", "McSOL", "N", 4)]
        breakdown = family_zone_breakdown(expired)
        self.assertEqual(list(breakdown["TES"]), ["N", "S"])
        self.assertEqual(breakdown["McSOL"], {"N": 4})


class TotalsTests(unittest.TestCase):
    def test_snapshot_totals_count_distinct_dealers(self):
        active = [_active("A", "TES", "N", 3), _active("B", "TES", "N", 4)]
        expired = [_expired("A", "McSOL", "N", 2)]
        self.assertEqual(snapshot_totals(active, expired), {"total_active": 7, "total_expired": 2, "total_dealers": 2})

    def test_history_summary(self):
        active = [_active("A", "TES", "N", 60)]
        expired = [_expired("A", "TES", "N", 25), _expired("B", "McSOL", "N", 12), _expired("C", "McSOL", "N", 3)]
        summary = history_summary(active, expired)
        self.assertEqual(summary["high_risk_expired"], 1)
        self.assertEqual(summary["medium_risk_expired"], 1)
        self.assertEqual(summary["total_expired_dealers"], 3)
        self.assertEqual(summary["expired_rate_pct"], 40.0)

    def test_history_summary_empty(self):
        self.assertEqual(history_summary([], [])["expired_rate_pct"], 0.0)

    def test_risk_tier(self):
        self.assertEqual(risk_tier(20), "high")
        self.assertEqual(risk_tier(10), "medium")
        self.assertEqual(risk_tier(9), "low")


class CombineTests(unittest.TestCase):
    def test_combine_by_dealer(self):
        rows = combine_by_dealer(
            [_active("A", "TES", "N", 3)],
            [_expired("A", "TES", "N", 2), _expired("B", "McSOL", "S", 1)],
        )
        self.assertEqual([(r.dealer, r.active_users, r.expired_users) for r in rows], [("A", 3, 2), ("B", 0, 1)])


class FilterSortTests(unittest.TestCase):
    def setUp(self):
        self.records = [
            _expired("Beta", "McSOL", "S", 5),
            _expired("alpha", "TES Gold", "N", 30),
            _expired("Gamma", "TES", "N", 12),
            _expired("Delta", "McSOL", "N", 21),
        ]

    def test_filter(self):
        self.assertEqual([r.dealer for r in filter_records(self.records, search="AL")], ["alpha"])
        self.assertEqual(len(filter_records(self.records, service="tes")), 2)
        self.assertEqual(len(filter_records(self.records, service="all", zone="N")), 3)

    def test_sort(self):
        self.assertEqual([r.dealer for r in sort_records(self.records)], ["alpha", "Delta", "Gamma", "Beta"])
        self.assertEqual([r.dealer for r in sort_records(self.records, "dealer")], ["alpha", "Beta", "Delta", "Gamma"])

    def test_high_risk_first(self):
        ordered = sort_expired_high_risk_first(self.records, "dealer")
        self.assertEqual([r.dealer for r in ordered], ["alpha", "Delta", "Beta", "Gamma"])


if __name__ == "__main__":
    unittest.main()
