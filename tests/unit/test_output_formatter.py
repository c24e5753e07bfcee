"""Unit tests for JSON output formatting."""

import json

from parts_finder.models.data_models import BatchOutcome, Confidence
from parts_finder.pipeline.output import JSONOutputFormatter
from parts_finder.pipeline.resolver import assemble_result, fallback_only_result
from parts_finder.processor.aggregator import aggregate
from parts_finder.processor.catalog import build_fallback
from tests.fixtures.sample_data import make_listings

VEHICLE = (2018, "Honda", "Accord")


def live_result():
    return assemble_result(
        "front bumper",
        "front_bumper_cracked",
        aggregate(make_listings([80, 95, 100, 110, 120, 140])),
        build_fallback("front bumper", *VEHICLE),
        search_url="https://www.ebay.com/sch/i.html?_nkw=bumper",
    )


class TestFormatResult:

    def test_live_result_fields(self):
        data = JSONOutputFormatter().format_result(live_result())

        assert data["part_name"] == "front bumper"
        assert data["damage_id"] == "front_bumper_cracked"
        assert data["cached"] is False
        assert data["ebay_median"] == 105.0
        assert data["ebay_confidence"] == "high"
        assert data["cheapest"]["price"] == 80
        assert data["cheapest"]["price_source"] == "live"
        assert len(data["results"]) == 7

    def test_estimate_only_omits_live_fields(self):
        result = fallback_only_result("hood", "hood_dented", *VEHICLE)
        data = JSONOutputFormatter().format_result(result)

        assert "ebay_median" not in data
        assert "ebay_confidence" not in data
        assert data["cheapest"]["price_source"] == "estimated"
        assert data["cheapest"]["confidence"] == "medium"
        assert data["cheapest"]["note"].startswith("Est. price")

    def test_optional_offer_fields_omitted(self):
        result = fallback_only_result("hood", "hood_dented", *VEHICLE)
        offer = JSONOutputFormatter().format_offer(result.cheapest)

        assert "image_url" not in offer
        assert "warranty" not in offer
        assert offer["availability"] == "in_stock"
        assert offer["condition"] == "new"

    def test_format_offer_none(self):
        assert JSONOutputFormatter().format_offer(None) is None


class TestSummary:

    def test_totals(self):
        estimate = fallback_only_result("hood", "hood_dented", *VEHICLE)
        summary = JSONOutputFormatter().summarize([live_result(), estimate])

        assert summary.total_parts == 2
        assert summary.parts_with_pricing == 2
        assert summary.parts_with_live_price == 1
        assert summary.total_cheapest == 80 + 380
        assert summary.cached_count == 0
        assert summary.degraded is False

    def test_empty(self):
        summary = JSONOutputFormatter().summarize([])
        assert summary.total_parts == 0
        assert summary.total_cheapest == 0


def test_format_outcome():
    outcome = BatchOutcome(results=[live_result()], timed_out=False)

    data = JSONOutputFormatter().format(outcome)

    assert data["timed_out"] is False
    assert data["summary"]["total_parts"] == 1
    assert data["results"][0]["ebay_confidence"] == Confidence.HIGH.value
    json.dumps(data)


def test_timed_out_outcome_is_degraded():
    outcome = BatchOutcome(results=[fallback_only_result("hood", "hood_dented", *VEHICLE)], timed_out=True)

    data = JSONOutputFormatter().format(outcome)

    assert data["timed_out"] is True
    assert data["summary"]["degraded"] is True


def test_save_creates_directories(tmp_path):
    path = tmp_path / "nested" / "out" / "parts.json"

    JSONOutputFormatter().save(BatchOutcome(results=[live_result()]), str(path))

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["results"][0]["part_name"] == "front bumper"
    assert saved["summary"]["parts_with_live_price"] == 1
