from decimal import Decimal
from types import SimpleNamespace

import pytest

from ewx_rewards.formatters import as_int
from ewx_rewards.models import ChainEvent, RewardTotals
from ewx_rewards.parsing import (
    event_period_index,
    parse_counter,
    parse_event,
    parse_group_config,
    parse_percent,
    parse_period_descriptor,
    parse_reward_totals,
    parse_stake_ledger,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, 0),
        (True, 1),
        (5, 5),
        ("5", 5),
        ("  5  ", 5),
        ("0x10", 16),
        ("1,000,000", 1_000_000),
        ("-500", -500),
    ],
)
def test_as_int(value, expected):
    assert as_int(value) == expected


def test_parse_period_descriptor_accepts_both_field_styles():
    snake = parse_period_descriptor({"index": 614, "first_block": 3000, "length": 1200})
    camel = parse_period_descriptor({"index": "614", "firstBlock": "3,000", "length": 1200})
    assert snake == camel
    assert snake.first_block == 3000


def test_parse_period_descriptor_rejects_garbage():
    with pytest.raises(ValueError):
        parse_period_descriptor([1, 2, 3])
    with pytest.raises(KeyError):
        parse_period_descriptor({"index": 1})


def test_parse_stake_ledger_from_map_and_pairs():
    from_map = parse_stake_ledger({"5": "0x64", 3: "1,000"})
    from_pairs = parse_stake_ledger([(5, 100), [3, 1000]])
    assert from_map.entries == {5: 100, 3: 1000}
    assert from_map == from_pairs
    assert from_map.latest() == (5, 100)


def test_parse_stake_ledger_handles_huge_stakes():
    huge = 2**127 + 12345
    assert parse_stake_ledger({7: str(huge)}).latest() == (7, huge)


def test_parse_stake_ledger_rejects_bad_shapes():
    with pytest.raises(ValueError):
        parse_stake_ledger("not a ledger")
    with pytest.raises(ValueError):
        parse_stake_ledger([(1, 2, 3)])


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("60.00%", Decimal("60.00")),
        (" 75% ", Decimal("75")),
        (600_000_000, Decimal("60")),
        ("600000000", Decimal("60")),
        (Decimal("12.5"), Decimal("12.5")),
    ],
)
def test_parse_percent(value, expected):
    assert parse_percent(value) == expected


def test_parse_percent_rejects_garbage():
    with pytest.raises(ValueError):
        parse_percent("sixty%")


def test_parse_group_config():
    group = parse_group_config("ns", {"namespace": "ns", "slaVotingThreshold": "60.00%", "other": 1})
    assert group.namespace == "ns"
    assert group.sla_voting_threshold == Decimal("60.00")
    assert group.raw["other"] == 1


def test_parse_reward_totals():
    assert parse_reward_totals(None) is None
    assert parse_reward_totals([1, "0x2"]) == RewardTotals(subscription=1, voting=2)
    assert parse_reward_totals({"subscription": 3, "voting": 4}) == RewardTotals(subscription=3, voting=4)
    with pytest.raises(ValueError):
        parse_reward_totals([1, 2, 3])


def test_parse_counter():
    assert parse_counter(None) is None
    assert parse_counter(0) == 0
    assert parse_counter("12") == 12


def test_parse_event_flat_record():
    event = parse_event(
        {
            "module_id": "WorkerNodePallet",
            "event_id": "RewardsCalculatedForPeriod",
            "attributes": {"period": 614},
        }
    )
    assert event == ChainEvent(pallet="WorkerNodePallet", name="RewardsCalculatedForPeriod", args=(614,))
    assert event_period_index(event) == 614


def test_parse_event_nested_record_object():
    record = SimpleNamespace(
        value={
            "phase": "Initialization",
            "event": {"module_id": "System", "event_id": "ExtrinsicSuccess", "attributes": None},
        }
    )
    event = parse_event(record)
    assert event.pallet == "System"
    assert event.args == ()
    assert event_period_index(event) is None


def test_parse_event_polkadot_js_shape():
    event = parse_event({"section": "workerNodePallet", "method": "RewardsCalculatedForPeriod", "data": ["614"]})
    assert event.is_("WorkerNodePallet", "RewardsCalculatedForPeriod")
    assert event_period_index(event) == 614


def test_event_period_index_non_numeric_first_arg():
    assert event_period_index(ChainEvent(pallet="P", name="E", args=("5Grw...",))) is None
