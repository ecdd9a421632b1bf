"""Subscription validation: the gate every analysis run must pass first."""

from typing import TYPE_CHECKING

from ewx_rewards.console import debug, info
from ewx_rewards.constants import SOLUTION_GROUP_STAKE_RECORDS
from ewx_rewards.errors import NotSubscribedError, TransientQueryError
from ewx_rewards.models import PeriodDescriptor, StakeLedger
from ewx_rewards.parsing import parse_stake_ledger
from ewx_rewards.periods import period_bounds

if TYPE_CHECKING:
    from ewx_rewards.chain import ChainClient  # pragma: no cover
    from ewx_rewards.config import AnalysisConfig  # pragma: no cover


def check_stake_ledger(ledger: StakeLedger, target_index: int) -> tuple[bool, int, int]:
    """
    Decide whether `ledger` grants a subscription for `target_index`.

    Only the entry with the highest key counts: its stake applies from that period onwards.
    Returns (is_valid, stake, last_update_period).
    """
    latest = ledger.latest()
    if latest is None:
        return False, 0, 0
    last_update_period, stake = latest
    return target_index >= last_update_period and stake > 0, stake, last_update_period


def validate_subscription(chain: "ChainClient", config: "AnalysisConfig", current: PeriodDescriptor) -> int:
    """
    Confirm the address was subscribed to the group at the start of the target period.

    Returns the stake amount; raises NotSubscribedError otherwise.
    """
    target = config.period_index
    info("🔍 Checking subscription status...")
    start_block = period_bounds(current, target).start
    ref = chain.get_block_hash(start_block)
    debug(config, f"Querying stake record at block {start_block} ({ref.hash})")

    raw = chain.read_storage(ref, SOLUTION_GROUP_STAKE_RECORDS, [config.group_namespace, config.address])
    if raw is None:
        raise NotSubscribedError(
            f"Address {config.address} was not subscribed to group {config.group_namespace} in period {target}"
        )
    try:
        ledger = parse_stake_ledger(raw)
    except (KeyError, ValueError) as ex:
        raise TransientQueryError(f"undecodable stake record at block {start_block}: {ex}") from ex

    is_valid, stake, last_update_period = check_stake_ledger(ledger, target)
    debug(config, f"Last stake update was in period {last_update_period}, current stake: {stake}")
    if not is_valid:
        raise NotSubscribedError(
            f"Address {config.address} was not subscribed to group {config.group_namespace} in period {target} "
            f"(stake: {stake}, last update period: {last_update_period})",
            stake_value=stake,
            last_update_period=last_update_period,
        )

    info(f"   ✅ Address was subscribed with stake: {stake}")
    return stake
