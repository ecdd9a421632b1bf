"""Finding the last block before rewards of a distribution round were written.

This is a heuristic: it walks back from the distribution block and stops at the first block
without per-address EarnedRewardCalculated events. The 50-block window has no protocol backing.
"""

from typing import TYPE_CHECKING

from ewx_rewards.console import debug, info
from ewx_rewards.constants import EARNED_REWARD_CALCULATED_EVENT
from ewx_rewards.errors import InvalidPeriodGeometryError, TransientQueryError
from ewx_rewards.models import BlockRef, ChainEvent, InitialBlock, InitialBlockConfidence

if TYPE_CHECKING:
    from ewx_rewards.chain import ChainClient  # pragma: no cover
    from ewx_rewards.config import AnalysisConfig  # pragma: no cover


def has_reward_calculation(events: list[ChainEvent]) -> bool:
    """Whether per-address rewards were written in this block."""
    return any(event.name == EARNED_REWARD_CALCULATED_EVENT for event in events)


def locate_initial_block(chain: "ChainClient", config: "AnalysisConfig", distribution_block: BlockRef) -> InitialBlock:
    """Pre-distribution block for `distribution_block`, with how confidently it was chosen."""
    block_number = chain.get_block_number(distribution_block)
    if block_number <= 0:
        raise InvalidPeriodGeometryError(f"Distribution block {distribution_block.label()} has no predecessor")
    debug(config, f"{EARNED_REWARD_CALCULATED_EVENT} search starts below block {block_number}")

    oldest_with_event: BlockRef | None = None
    for offset in range(1, config.backward_window_blocks + 1):
        check_number = block_number - offset
        if check_number < 0:
            break
        try:
            ref = chain.get_block_hash(check_number)
            events = chain.get_events(ref)
        except TransientQueryError as ex:
            debug(config, f"Error checking block {check_number}: {ex}")
            continue

        if not has_reward_calculation(events):
            info(f"✅ Found initial state block: {ref.label()} (no {EARNED_REWARD_CALCULATED_EVENT} event)")
            return InitialBlock(block=ref, confidence=InitialBlockConfidence.EXACT)
        debug(config, f"Block {check_number} has {EARNED_REWARD_CALCULATED_EVENT} event")
        oldest_with_event = ref

    if oldest_with_event is not None:
        info(
            f"⚠️  Could not find block without {EARNED_REWARD_CALCULATED_EVENT} event, "
            f"using last block with event: {oldest_with_event.label()}"
        )
        return InitialBlock(block=oldest_with_event, confidence=InitialBlockConfidence.DEGRADED)

    ref = chain.get_block_hash(block_number - 1)
    info(f"⚠️  Fallback: using block before distribution: {ref.label()}")
    return InitialBlock(block=ref, confidence=InitialBlockConfidence.FALLBACK)
