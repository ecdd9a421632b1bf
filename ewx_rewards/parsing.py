"""Decoding of raw chain values into typed models.

Everything the chain client hands back goes through here, so the rest of the package never
has to guess whether a number arrived as an int, a decimal string or a hex string.
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from ewx_rewards.constants import PERBILL_PER_PERCENT
from ewx_rewards.formatters import as_int
from ewx_rewards.models import ChainEvent, GroupConfig, PeriodDescriptor, RewardTotals, StakeLedger


def _field(data: Mapping[str, Any], *names: str) -> Any:
    """Return the first present field; runtime metadata uses snake_case, polkadot.js camelCase."""
    for name in names:
        if name in data:
            return data[name]
    raise KeyError(f"none of {names} present in {sorted(data)}")


def parse_period_descriptor(value: Any) -> PeriodDescriptor:
    """Parse ActiveRewardPeriodInfo."""
    if not isinstance(value, Mapping):
        raise ValueError(f"Unexpected ActiveRewardPeriodInfo format: {value!r}")
    return PeriodDescriptor(
        index=as_int(_field(value, "index")),
        first_block=as_int(_field(value, "first_block", "firstBlock")),
        length=as_int(_field(value, "length")),
    )


def parse_stake_ledger(value: Any) -> StakeLedger:
    """
    Parse a SolutionGroupStakeRecords entry.

    The record is a BTreeMap<RewardPeriodIndex, Stake>; depending on the codec version it decodes
    to a dict or to a list of (period, stake) pairs.
    """
    if isinstance(value, Mapping):
        pairs = list(value.items())
    elif isinstance(value, (list, tuple)):
        pairs = []
        for item in value:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise ValueError(f"Unexpected stake record entry: {item!r}")
            pairs.append((item[0], item[1]))
    else:
        raise ValueError(f"Unexpected stake record format: {value!r}")
    return StakeLedger(entries={as_int(period): as_int(stake) for period, stake in pairs})


def parse_percent(value: Any) -> Decimal:
    """
    Parse an SLA threshold into a percentage.

    Human-readable values look like "60.00%"; raw values are Perbill parts per billion.
    """
    if isinstance(value, str):
        text = value.strip()
        try:
            if text.endswith("%"):
                return Decimal(text[:-1].strip())
            return Decimal(as_int(text)) / PERBILL_PER_PERCENT
        except (InvalidOperation, ValueError) as ex:
            raise ValueError(f"Unexpected SLA threshold format: {value!r}") from ex
    if isinstance(value, Decimal):
        return value
    return Decimal(as_int(value)) / PERBILL_PER_PERCENT


def parse_group_config(namespace: str, value: Any) -> GroupConfig:
    """Parse a SolutionsGroups entry."""
    if not isinstance(value, Mapping):
        raise ValueError(f"Unexpected solution group format for {namespace}: {value!r}")
    threshold = _field(value, "sla_voting_threshold", "slaVotingThreshold")
    return GroupConfig(namespace=namespace, sla_voting_threshold=parse_percent(threshold), raw=dict(value))


def parse_reward_totals(value: Any) -> RewardTotals | None:
    """Parse EarnedRewards as a (subscription, voting) pair; None means absent."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return RewardTotals(
            subscription=as_int(_field(value, "subscription", "subscription_rewards", "0")),
            voting=as_int(_field(value, "voting", "voting_rewards", "1")),
        )
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return RewardTotals(subscription=as_int(value[0]), voting=as_int(value[1]))
    raise ValueError(f"Unexpected earned rewards format: {value!r}")


def parse_counter(value: Any) -> int | None:
    """Parse a u32 counter; None means absent."""
    if value is None:
        return None
    return as_int(value)


def _event_args(attributes: Any) -> tuple[Any, ...]:
    if attributes is None:
        return ()
    if isinstance(attributes, Mapping):
        return tuple(attributes.values())
    if isinstance(attributes, (list, tuple)):
        return tuple(attributes)
    return (attributes,)


def parse_event(record: Any) -> ChainEvent:
    """Parse one System.Events record (EventRecord object or its decoded dict)."""
    data = getattr(record, "value", record)
    if not isinstance(data, Mapping):
        raise ValueError(f"Unexpected event record format: {record!r}")
    event = data.get("event") if isinstance(data.get("event"), Mapping) else data
    return ChainEvent(
        pallet=str(_field(event, "module_id", "section")),
        name=str(_field(event, "event_id", "method")),
        args=_event_args(event.get("attributes", event.get("data"))),
    )


def event_period_index(event: ChainEvent) -> int | None:
    """First event argument as a period index, if it has one."""
    if not event.args:
        return None
    try:
        return as_int(event.args[0])
    except (TypeError, ValueError):
        return None
