"""Finding the block at which rewards for a period were distributed.

Three strategies are tried in order, each able to answer on its own:

1. pinned hash   - the caller names the block; it is verified and never second-guessed.
2. indexer       - an external GraphQL indexer is asked; any trouble just moves on.
3. chain scan    - blocks of the following period are read one by one until the event shows up.
"""

import sys
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from tqdm import tqdm

from ewx_rewards.console import debug, info
from ewx_rewards.constants import REWARDS_CALCULATED_EVENT, WORKER_NODE_PALLET
from ewx_rewards.errors import (
    AnalysisError,
    CurrentPeriodNotFinalizedError,
    EventNotFoundError,
    IndexerError,
    PinnedBlockMismatchError,
    ScanBudgetExceededError,
    TransientQueryError,
)
from ewx_rewards.indexer import fetch_distribution_events, pick_block_in_window
from ewx_rewards.models import BlockRef, ChainEvent, PeriodDescriptor
from ewx_rewards.parsing import event_period_index
from ewx_rewards.periods import next_period_start, period_bounds
from ewx_rewards.snapshot import count_system_voting_rounds

if TYPE_CHECKING:
    from ewx_rewards.chain import ChainClient  # pragma: no cover
    from ewx_rewards.config import AnalysisConfig  # pragma: no cover


class StrategyStatus(str, Enum):
    FOUND = "found"
    TRY_NEXT = "try_next"
    ABORT = "abort"


@dataclass(frozen=True)
class StrategyResult:
    status: StrategyStatus
    block: BlockRef | None = None
    error: AnalysisError | None = None

    @classmethod
    def found(cls, block: BlockRef) -> "StrategyResult":
        return cls(StrategyStatus.FOUND, block=block)

    @classmethod
    def try_next(cls, error: AnalysisError | None = None) -> "StrategyResult":
        return cls(StrategyStatus.TRY_NEXT, error=error)

    @classmethod
    def abort(cls, error: AnalysisError) -> "StrategyResult":
        return cls(StrategyStatus.ABORT, error=error)


@dataclass(frozen=True)
class LocatorContext:
    chain: "ChainClient"
    config: "AnalysisConfig"
    current: PeriodDescriptor
    clock: Callable[[], float] = time.monotonic


Strategy = Callable[[LocatorContext], StrategyResult]


def is_distribution_event(event: ChainEvent, period_index: int) -> bool:
    return event.is_(WORKER_NODE_PALLET, REWARDS_CALCULATED_EVENT) and event_period_index(event) == period_index


def has_distribution_event(events: Iterable[ChainEvent], period_index: int) -> bool:
    return any(is_distribution_event(event, period_index) for event in events)


def pinned_block_strategy(ctx: LocatorContext) -> StrategyResult:
    """Accept the caller-supplied block only if it carries the distribution event."""
    target = ctx.config.period_index
    ref = BlockRef(hash=ctx.config.pinned_block_hash or "")
    info(f"🔍 Verifying {REWARDS_CALCULATED_EVENT} for period {target} in provided block {ref.hash}...")
    try:
        events = ctx.chain.get_events(ref)
        if not has_distribution_event(events, target):
            return StrategyResult.abort(
                PinnedBlockMismatchError(
                    f"{REWARDS_CALCULATED_EVENT} event for period {target} not found in the provided block {ref.hash}"
                )
            )
        ref = ctx.chain.resolve(ref)
    except TransientQueryError as ex:
        return StrategyResult.abort(ex)
    info(f"✅ Verified {REWARDS_CALCULATED_EVENT} for period {target} at block {ref.label()}")
    return StrategyResult.found(ref)


def indexer_strategy(ctx: LocatorContext) -> StrategyResult:
    """Ask the indexer; the answer is trusted without re-reading the block's events."""
    config = ctx.config
    target = config.period_index
    info(f"🔍 Querying indexer at {config.indexer_url} for {REWARDS_CALCULATED_EVENT}...")
    window_start = next_period_start(ctx.current, target)
    debug(
        config,
        f"Looking for the event in blocks {window_start}-{window_start + config.indexer_window_blocks} "
        f"(after period {target + 1} starts)",
    )
    try:
        block_numbers = fetch_distribution_events(config.indexer_url or "", timeout_s=config.indexer_timeout_s)
        block_number = pick_block_in_window(
            block_numbers, window_start=window_start, window_blocks=config.indexer_window_blocks
        )
        if block_number is None:
            raise IndexerError(f"no {REWARDS_CALCULATED_EVENT} event within the period {target} search window")
        ref = ctx.chain.get_block_hash(block_number)
    except (IndexerError, TransientQueryError) as ex:
        info(f"⚠️  Indexer lookup failed: {ex}; falling back to blockchain search")
        return StrategyResult.try_next(ex)
    info(f"✅ Found block {ref.label()} from indexer")
    return StrategyResult.found(ref)


def scan_start_block(ctx: LocatorContext, next_start: int, next_end: int) -> int:
    """
    Skip the blocks distribution cannot have finished in yet.

    Distribution handles one voting round per block, so the round count of the period before the
    target is a lower bound on how long it takes. Period 0 has no predecessor; only library callers
    reach that case, since the CLI rejects period indexes below 1.
    """
    previous_index = ctx.config.period_index - 1
    if previous_index < 0:
        return next_start
    rounds = count_system_voting_rounds(ctx.chain, ctx.config, ctx.current, previous_index)
    start = next_start + rounds
    if start > next_end:
        debug(ctx.config, f"Start block {start} exceeds period end {next_end}, using period start instead")
        return next_start
    debug(
        ctx.config,
        f"Search start: block {start} ({next_start} + {rounds} SystemVotingRounds); range reduced from "
        f"{next_end - next_start + 1} to {next_end - start + 1} blocks",
    )
    return start


def chain_scan_strategy(ctx: LocatorContext) -> StrategyResult:
    """Walk the following period block by block; read failures of single blocks are skipped."""
    config = ctx.config
    target = config.period_index
    next_index = target + 1
    if next_index > ctx.current.index:
        return StrategyResult.abort(
            CurrentPeriodNotFinalizedError(
                f"Period {target} is the current period ({ctx.current.index}) or in the future. "
                f"{REWARDS_CALCULATED_EVENT} event has not been emitted yet."
            )
        )

    next_period = period_bounds(ctx.current, next_index)
    start = scan_start_block(ctx, next_period.start, next_period.end)
    info(f"🔍 Scanning blocks {start} to {next_period.end} for {REWARDS_CALCULATED_EVENT}({target})...")

    budget = config.scan_timeout_s
    started = ctx.clock()
    with tqdm(
        total=next_period.end - start + 1, desc="🔍 Scanning blocks", unit="block", file=sys.stderr
    ) as pbar:
        for block_number in range(start, next_period.end + 1):
            if budget and ctx.clock() - started > budget:
                return StrategyResult.abort(
                    ScanBudgetExceededError(
                        f"Scan for period {target} exceeded its {budget:g}s budget at block {block_number} "
                        f"(range {start}-{next_period.end})",
                        target_index=target,
                        scanned_range=(start, block_number - 1),
                    )
                )
            pbar.set_postfix(block=block_number)
            try:
                ref = ctx.chain.get_block_hash(block_number)
                events = ctx.chain.get_events(ref)
            except TransientQueryError as ex:
                debug(config, f"Could not query block {block_number}: {ex}")
                pbar.update(1)
                continue
            pbar.update(1)
            if has_distribution_event(events, target):
                info(f"✅ Found {REWARDS_CALCULATED_EVENT} for period {target} at block {ref.label()}")
                return StrategyResult.found(ref)

    return StrategyResult.abort(
        EventNotFoundError(
            f"No {REWARDS_CALCULATED_EVENT} event found for period {target} "
            f"in the optimized search range {start}-{next_period.end}",
            target_index=target,
            scanned_range=(start, next_period.end),
        )
    )


def build_strategies(config: "AnalysisConfig") -> list[tuple[str, Strategy]]:
    """Strategies to try, in priority order. A pinned hash excludes every other strategy."""
    if config.pinned_block_hash:
        return [("pinned", pinned_block_strategy)]
    strategies: list[tuple[str, Strategy]] = []
    if config.indexer_url:
        strategies.append(("indexer", indexer_strategy))
    strategies.append(("chain-scan", chain_scan_strategy))
    return strategies


def locate_distribution_block(
    chain: "ChainClient",
    config: "AnalysisConfig",
    current: PeriodDescriptor,
    *,
    strategies: list[tuple[str, Strategy]] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> BlockRef:
    """Block at which RewardsCalculatedForPeriod(config.period_index) was emitted."""
    ctx = LocatorContext(chain=chain, config=config, current=current, clock=clock)
    for name, strategy in strategies if strategies is not None else build_strategies(config):
        debug(config, f"Trying strategy: {name}")
        result = strategy(ctx)
        if result.status is StrategyStatus.FOUND and result.block is not None:
            return result.block
        if result.status is StrategyStatus.ABORT and result.error is not None:
            raise result.error
        debug(config, f"Strategy {name} gave no answer")
    raise EventNotFoundError(
        f"No strategy located {REWARDS_CALCULATED_EVENT} for period {config.period_index}",
        target_index=config.period_index,
    )
