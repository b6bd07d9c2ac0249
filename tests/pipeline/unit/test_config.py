import pytest

from tabview.pipeline.config import DEFAULT_CFG, Limits, merge_cfg
from tabview.pipeline.errors import ConfigurationError


def test_merge_cfg_merges_limits_without_touching_defaults():
    cfg = merge_cfg({"limits": {"maxGroups": 5}, "ungroupedKey": "Other"})

    assert cfg["limits"] == {"maxGroups": 5, "maxItemsPerGroup": None, "expandThreshold": 10}
    assert cfg["ungroupedKey"] == "Other"
    assert DEFAULT_CFG["limits"]["maxGroups"] is None
    assert DEFAULT_CFG["ungroupedKey"] == "Ungrouped"


def test_limits_merge_accepts_camel_and_snake_case():
    limits = Limits().merged({"maxGroups": 3}).merged({"max_items_per_group": 2})
    assert limits == Limits(max_groups=3, max_items_per_group=2)
    assert limits.applied is True
    assert Limits().applied is False


def test_limits_round_trip_through_cfg_dict():
    limits = Limits.from_cfg({"maxGroups": 4, "expandThreshold": 20})
    assert limits.to_cfg() == {"maxGroups": 4, "maxItemsPerGroup": None, "expandThreshold": 20}


@pytest.mark.parametrize(
    "overrides",
    [
        {"maxGroups": -1},
        {"maxItemsPerGroup": "10"},
        {"maxGroups": True},
        {"pageSize": 10},
    ],
)
def test_invalid_limits_raise_configuration_error(overrides):
    with pytest.raises(ConfigurationError):
        Limits().merged(overrides)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        Limits(max_groups=-5)
