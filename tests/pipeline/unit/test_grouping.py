import logging
from datetime import datetime, timezone

import pytest

from tabview.pipeline.errors import ConfigurationError
from tabview.pipeline.grouping import (
    GROUPING_STRATEGIES,
    GroupBuilder,
    GroupingEngine,
    GroupingStrategy,
    GroupSpec,
    calculate_sub_counts,
    group_records,
    grouping_preset,
)


def _item(**overrides):
    base = {"id": 0, "title": "Tab", "url": "https://example.com/", "domain": "example.com", "category": 0}
    base.update(overrides)
    return base


def _ms(*args):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def _group(records, *fields, count_by=(), include_ungrouped=True):
    return group_records(records, GroupSpec(fields, count_by, include_ungrouped))


def test_category_groups_follow_fixed_display_order():
    records = [_item(id=1, category=1), _item(id=2, category=2), _item(id=3, category=3), _item(id=4, category=0)]
    result = _group(records, "category")

    assert list(result["groups"]) == ["0", "3", "2", "1"]
    assert result["groupLabels"]["3"] == "Important"
    assert result["groupCounts"] == {"0": 1, "3": 1, "2": 1, "1": 1}


def test_category_order_skips_empty_categories():
    records = [_item(category=2), _item(category=0), _item(category=3)]
    assert list(_group(records, "category")["groups"]) == ["0", "3", "2"]


def test_missing_group_value_goes_to_ungrouped_last():
    records = [_item(id=1, category=None), _item(id=2, category=3)]
    result = _group(records, "category")

    assert list(result["groups"]) == ["3", "Ungrouped"]
    assert result["ungroupedCount"] == 1
    assert result["totalCount"] == 2


def test_ungrouped_can_be_excluded_but_is_still_counted():
    records = [_item(id=1, category=None), _item(id=2, category=3)]
    result = _group(records, "category", include_ungrouped=False)

    assert list(result["groups"]) == ["3"]
    assert result["ungroupedCount"] == 1


def test_no_group_fields_yields_single_all_group():
    records = [_item(id=1), _item(id=2)]
    result = _group(records)

    assert list(result["groups"]) == ["all"]
    assert result["groups"]["all"] == records


def test_grouping_is_lossless_and_keeps_record_order():
    records = [_item(id=i, category=i % 4) for i in range(10)] + [_item(id=99, category=None)]
    result = _group(records, "category")

    assert sum(result["groupCounts"].values()) == len(records)
    for key, members in result["groups"].items():
        positions = [records.index(r) for r in members]
        assert positions == sorted(positions)
        assert result["groupCounts"][key] == len(members)


def test_domain_groups_are_alphabetical_and_strip_www():
    records = [
        _item(domain="zulip.com"),
        _item(domain="www.Apple.com"),
        _item(domain="github.com"),
        _item(domain="unknown"),
    ]
    result = _group(records, "domain")
    assert list(result["groups"]) == ["Apple.com", "github.com", "Unknown Domain", "zulip.com"]


def test_week_groups_are_newest_first():
    records = [_item(weekNumber=2), _item(weekNumber=10), _item(weekNumber=5), _item(weekNumber="n/a")]
    result = _group(records, "weekNumber")
    assert list(result["groups"]) == ["Week 10", "Week 5", "Week 2", "Ungrouped"]


def test_month_and_quarter_labels_are_readable_and_newest_first():
    records = [_item(monthYear="2025-01"), _item(monthYear="2024-12"), _item(monthYear="2025-03")]
    assert list(_group(records, "monthYear")["groups"]) == ["March 2025", "January 2025", "December 2024"]

    records = [_item(yearQuarter="2024-Q4"), _item(yearQuarter="2025-Q1")]
    assert list(_group(records, "yearQuarter")["groups"]) == ["2025 Q1", "2024 Q4"]


def test_date_groups_are_newest_first_with_unknown_dates_last():
    records = [
        _item(id=1, lastAccessed=_ms(2025, 1, 5, 9)),
        _item(id=2, lastAccessed="garbage"),
        _item(id=3, lastAccessed=_ms(2025, 2, 1)),
        _item(id=4, lastAccessed=_ms(2025, 1, 5, 18)),
    ]
    result = _group(records, "lastAccessed")

    assert list(result["groups"]) == ["2/1/2025", "1/5/2025", "Unknown Date"]
    assert [r["id"] for r in result["groups"]["1/5/2025"]] == [1, 4]


def test_schema_declared_date_field_uses_date_strategy():
    records = [_item(createdAt="2025-03-02T00:00:00Z")]
    result = group_records(records, GroupSpec(("createdAt",)), {"createdAt": {"type": "date"}})
    assert list(result["groups"]) == ["3/2/2025"]


def test_multi_field_groups_join_keys_and_keep_first_seen_order():
    records = [
        _item(id=1, category=2, domain="b.com"),
        _item(id=2, category=3, domain="a.com"),
        _item(id=3, category=2, domain="b.com"),
    ]
    result = _group(records, "category", "domain")

    assert list(result["groups"]) == ["2 | b.com", "3 | a.com"]
    assert result["groupLabels"]["3 | a.com"] == "Important | a.com"
    assert result["groupCounts"]["2 | b.com"] == 2


def test_sub_counts_use_labels_and_unknown_bucket():
    records = [_item(category=3, domain="a.com"), _item(category=3, domain=None), _item(category=2, domain="a.com")]
    counts = calculate_sub_counts(records, ["category", "domain"])

    assert counts["category"] == {"Important": 2, "Useful": 1}
    assert counts["domain"] == {"a.com": 2, "Unknown": 1}
    assert counts["total"] == 3


def test_failing_formatter_falls_back_to_raw_value(monkeypatch, caplog):
    def explode(value, cfg):
        raise RuntimeError("bad formatter")

    monkeypatch.setitem(GROUPING_STRATEGIES, "domain", GroupingStrategy(explode))
    records = [_item(domain="b.com"), _item(domain="a.com")]

    with caplog.at_level(logging.ERROR, logger="tabview.pipeline.grouping"):
        result = _group(records, "domain")

    assert sorted(result["groups"]) == ["a.com", "b.com"]
    assert "Group formatter failed" in caplog.text


def test_empty_or_invalid_input_yields_empty_result():
    for records in ([], None, "records"):
        result = group_records(records, GroupSpec(("category",)))
        assert result["groups"] == {}
        assert result["totalCount"] == 0


def test_engine_setters_presets_and_builder():
    engine = GroupingEngine()
    engine.set_group_by("domain")
    engine.set_count_by(["category"])
    assert engine.group_by == ("domain",)
    assert engine.count_by == ("category",)

    engine.use_preset("month_year")
    assert engine.spec == grouping_preset("month_year")

    with pytest.raises(ConfigurationError):
        engine.use_preset("by_mood")

    built = GroupBuilder().by_category().count_by("domain").include_ungrouped(False).build()
    assert built.spec == GroupSpec(("category",), ("domain",), False)


def test_custom_cfg_changes_keys():
    engine = GroupingEngine(GroupSpec(("category",)), cfg={"ungroupedKey": "Other"})
    result = engine.group_data([_item(category=None)])
    assert list(result["groups"]) == ["Other"]


def test_real_group_named_like_ungrouped_keeps_its_records():
    records = [_item(id=1, status="Ungrouped"), _item(id=2, status="Ungrouped"), _item(id=3)]
    result = _group(records, "status")

    assert list(result["groups"]) == ["Ungrouped"]
    assert [r["id"] for r in result["groups"]["Ungrouped"]] == [1, 2, 3]
    assert result["groupCounts"]["Ungrouped"] == 3
    assert result["subCounts"]["Ungrouped"]["total"] == 3
    assert result["ungroupedCount"] == 1


def test_real_group_named_like_ungrouped_stays_when_ungrouped_excluded():
    records = [_item(id=1, status="Ungrouped"), _item(id=2)]
    result = _group(records, "status", include_ungrouped=False)

    assert [r["id"] for r in result["groups"]["Ungrouped"]] == [1]
    assert result["ungroupedCount"] == 1


def test_unparseable_months_and_quarters_sort_last():
    records = [_item(monthYear="2025-03"), _item(monthYear="n/a"), _item(monthYear="2024-12")]
    assert list(_group(records, "monthYear")["groups"]) == ["March 2025", "December 2024", "n/a"]

    records = [_item(yearQuarter="later"), _item(yearQuarter="2024-Q4"), _item(yearQuarter="2025-Q2")]
    assert list(_group(records, "yearQuarter")["groups"]) == ["2025 Q2", "2024 Q4", "later"]


def test_unknown_categories_follow_known_ones_in_first_seen_order():
    records = [_item(category=7), _item(category=3), _item(category=5), _item(category=0)]
    result = _group(records, "category")

    assert list(result["groups"]) == ["0", "3", "7", "5"]
    assert result["groupLabels"]["7"] == "Category 7"


def test_whole_number_float_categories_join_their_integer_group():
    records = [_item(id=1, category=2.0), _item(id=2, category=2), _item(id=3, category="3.0")]
    result = _group(records, "category")

    assert list(result["groups"]) == ["3", "2"]
    assert [r["id"] for r in result["groups"]["2"]] == [1, 2]
    assert result["groupLabels"]["2"] == "Useful"
