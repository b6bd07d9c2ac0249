import pytest

from tabview.pipeline import (
    AggregationBuilder,
    Aggregator,
    DomainFilter,
    GroupSpec,
    Limits,
    PipelineQuery,
    TextSearchFilter,
    run_pipeline,
    sort_preset,
)
from tabview.sources import CURRENT_TABS_SCHEMA, InMemoryDataSource


def _item(**overrides):
    base = {"id": 0, "title": "Tab", "url": "https://example.com/", "domain": "example.com", "category": 0}
    base.update(overrides)
    return base


def _aggregator(records):
    aggregator = Aggregator()
    aggregator.register_data_source(InMemoryDataSource("memory", records, schema=CURRENT_TABS_SCHEMA))
    return aggregator


@pytest.mark.asyncio
async def test_category_groups_come_out_uncategorized_important_useful():
    records = [
        _item(id=1, category=2),
        _item(id=2, category=0),
        _item(id=3, category=3),
        _item(id=4, category=2),
        _item(id=5, category=0),
    ]
    result = await AggregationBuilder(_aggregator(records)).from_("memory").group(
        lambda engine: engine.use_preset("category")
    ).execute()

    assert list(result["groups"]) == ["0", "3", "2"]
    assert [len(result["groups"][key]) for key in result["groups"]] == [2, 1, 2]


def test_search_tokens_may_match_across_fields():
    record = _item(title="Foo Corp", url="https://example.com/bar", domain="example.com")

    assert TextSearchFilter("foo bar").create_filter()(record, CURRENT_TABS_SCHEMA) is True
    assert TextSearchFilter("foo baz").create_filter()(record, CURRENT_TABS_SCHEMA) is False


@pytest.mark.asyncio
async def test_max_groups_hides_remaining_domain_groups():
    records = [_item(id=i, domain=f"site{i}.com") for i in range(5)]
    result = await (
        AggregationBuilder(_aggregator(records))
        .from_("memory")
        .group(lambda engine: engine.use_preset("domain"))
        .limit({"maxGroups": 2})
        .execute()
    )

    assert len(result["groups"]) == 2
    assert result["pagination"]["hasMoreGroups"] is True
    assert result["pagination"]["hiddenGroupCount"] == 3
    assert result["metadata"]["counts"]["totalGroups"] == 5


def test_domain_exclusion_drops_subdomains():
    records = [_item(id=1, domain="a.example.com"), _item(id=2, domain="other.com")]
    query = PipelineQuery(filters=(("domains", DomainFilter(["example.com"], exclude=True).create_filter()),))

    result = run_pipeline(records, CURRENT_TABS_SCHEMA, query)

    assert [r["id"] for r in result["groups"]["all"]] == [2]


def test_category_then_title_preset_orders_titles_within_category():
    records = [_item(id=1, title="B", category=2), _item(id=2, title="A", category=2)]
    query = PipelineQuery(sort_criteria=sort_preset("category_then_title"))

    result = run_pipeline(records, CURRENT_TABS_SCHEMA, query)

    assert [r["title"] for r in result["groups"]["all"]] == ["A", "B"]


def test_pipeline_output_is_subset_of_input_and_counts_are_consistent():
    records = [_item(id=i, category=i % 4, title=f"Tab {i}", domain=f"d{i % 3}.com") for i in range(20)]
    query = PipelineQuery(
        filters=(("not-ignored", lambda record, schema: record["category"] != 1),),
        sort_criteria=sort_preset("domain_then_title"),
        group_spec=GroupSpec(("category",), ("domain",)),
        limits=Limits(max_groups=2, max_items_per_group=3),
    )

    result = run_pipeline(records, CURRENT_TABS_SCHEMA, query)

    shown = [r for members in result["groups"].values() for r in members]
    assert all(r in records and r["category"] != 1 for r in shown)
    assert list(result["groups"]) == ["0", "3"]
    for key, members in result["groups"].items():
        assert len(members) <= 3
        assert result["subCounts"][key]["total"] == result["groupCounts"][key]
        assert result["pagination"]["hasMoreItems"][key] == (result["groupCounts"][key] > len(members))
    assert result["metadata"]["counts"]["filtered"] == 15
