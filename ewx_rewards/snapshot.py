"""Reading the state facts needed for the analysis at a pinned block."""

from typing import TYPE_CHECKING

from ewx_rewards.console import debug
from ewx_rewards.constants import (
    EARNED_REWARDS,
    NUMBER_OF_OPERATOR_VOTINGS_WITH_NOMINATION,
    NUMBER_OF_VOTINGS,
    NUMBER_OF_VOTINGS_WITH_NOMINATION,
    SOLUTIONS_GROUPS,
    SYSTEM_VOTING_ROUND,
    SYSTEM_VOTING_ROUND_PAGE_SIZE,
    VOTE_METADATA,
)
from ewx_rewards.errors import GroupNotFoundError, MissingStateError, TransientQueryError
from ewx_rewards.models import ZERO_REWARDS, BlockRef, GroupConfig, PeriodDescriptor, RewardTotals, StateSnapshot
from ewx_rewards.parsing import parse_counter, parse_group_config, parse_reward_totals
from ewx_rewards.periods import period_bounds

if TYPE_CHECKING:
    from ewx_rewards.chain import ChainClient  # pragma: no cover
    from ewx_rewards.config import AnalysisConfig  # pragma: no cover


def read_eligible_rounds(chain: "ChainClient", config: "AnalysisConfig", ref: BlockRef) -> int:
    """
    Voting rounds the address was entitled to vote in.

    total_eligible = NumberOfVotings - (NumberOfVotingsWithNomination - NumberOfOperatorVotingsWithNomination)
    """
    period, group = config.period_index, config.group_namespace
    total_votings = parse_counter(chain.read_storage(ref, NUMBER_OF_VOTINGS, [period, group]))
    with_nomination = parse_counter(chain.read_storage(ref, NUMBER_OF_VOTINGS_WITH_NOMINATION, [period, group]))
    if total_votings is None or with_nomination is None:
        raise MissingStateError(
            f"Some voting data not found for period {period}, group {group} at {ref.label()}. "
            f"{NUMBER_OF_VOTINGS}: {'Some' if total_votings is not None else 'None'}, "
            f"{NUMBER_OF_VOTINGS_WITH_NOMINATION}: {'Some' if with_nomination is not None else 'None'}"
        )

    operator_with_nomination = 0
    if chain.has_storage(NUMBER_OF_OPERATOR_VOTINGS_WITH_NOMINATION):
        value = chain.read_storage(
            ref, NUMBER_OF_OPERATOR_VOTINGS_WITH_NOMINATION, [period, (config.address, group)]
        )
        operator_with_nomination = parse_counter(value) or 0
    else:
        debug(config, f"{NUMBER_OF_OPERATOR_VOTINGS_WITH_NOMINATION} not in runtime metadata, using 0")

    eligible = total_votings - (with_nomination - operator_with_nomination)
    debug(
        config,
        f"totalVotings={total_votings}, totalVotingsWithNomination={with_nomination}, "
        f"operatorVotingsWithNomination={operator_with_nomination} -> eligibleRounds={eligible}",
    )
    return eligible


def read_votes(chain: "ChainClient", config: "AnalysisConfig", ref: BlockRef) -> int:
    """Correct votes of the address in (group, period)."""
    value = chain.read_storage(ref, VOTE_METADATA, [config.group_namespace, config.period_index, config.address])
    return parse_counter(value) or 0


def read_group_config(chain: "ChainClient", config: "AnalysisConfig", ref: BlockRef) -> GroupConfig:
    """SolutionsGroups entry of the configured group; missing or unreadable means GroupNotFoundError."""
    value = chain.read_storage(ref, SOLUTIONS_GROUPS, [config.group_namespace])
    if value is None:
        raise GroupNotFoundError(f"Solution group {config.group_namespace} not found at {ref.label()}")
    try:
        return parse_group_config(config.group_namespace, value)
    except (KeyError, ValueError) as ex:
        raise GroupNotFoundError(
            f"Could not read SLA threshold for group {config.group_namespace} at {ref.label()}: {ex}"
        ) from ex


def read_rewards(
    chain: "ChainClient", config: "AnalysisConfig", ref: BlockRef, *, allow_missing: bool = False
) -> RewardTotals:
    """Accumulated (subscription, voting) rewards of the address in the group."""
    value = chain.read_storage(ref, EARNED_REWARDS, [config.address, config.group_namespace])
    try:
        rewards = parse_reward_totals(value)
    except (KeyError, ValueError) as ex:
        raise TransientQueryError(f"undecodable {EARNED_REWARDS} at {ref.label()}: {ex}") from ex
    if rewards is None:
        if allow_missing:
            debug(config, f"No rewards recorded at {ref.label()}, assuming 0")
            return ZERO_REWARDS
        raise MissingStateError(f"No earned rewards for {config.address} in {config.group_namespace} at {ref.label()}")
    return rewards


def read_snapshot(
    chain: "ChainClient", config: "AnalysisConfig", ref: BlockRef, *, allow_missing_rewards: bool = False
) -> StateSnapshot:
    """Read every state fact of the analysis at `ref`.

    The reads are independent of one another once the block is fixed; they run one after the other
    over the single node connection.
    """
    period = period_bounds(chain.read_active_period(ref), config.period_index)
    group = read_group_config(chain, config, ref)
    eligible_rounds = read_eligible_rounds(chain, config, ref)
    votes = read_votes(chain, config, ref)
    rewards = read_rewards(chain, config, ref, allow_missing=allow_missing_rewards)
    return StateSnapshot(
        block=ref,
        period=period,
        group=group,
        eligible_rounds=eligible_rounds,
        votes=votes,
        rewards=rewards,
    )


def count_system_voting_rounds(
    chain: "ChainClient", config: "AnalysisConfig", current: PeriodDescriptor, period_index: int
) -> int:
    """Number of SystemVotingRound entries (all groups) for `period_index`, read at its last block."""
    last_block = period_bounds(current, period_index).end
    ref = chain.get_block_hash(last_block)
    entries = chain.read_storage_entries(
        ref, SYSTEM_VOTING_ROUND, [period_index], page_size=SYSTEM_VOTING_ROUND_PAGE_SIZE
    )
    debug(config, f"Found {len(entries)} SystemVotingRounds for period {period_index} at block {last_block}")
    return len(entries)
