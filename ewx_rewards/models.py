"""Data models for reward period analysis."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class PeriodDescriptor:
    """The reward period the chain reports as active at some block."""

    index: int
    first_block: int
    length: int


@dataclass(frozen=True)
class PeriodBounds:
    """Absolute block range of one reward period (both ends inclusive)."""

    index: int
    start: int
    end: int
    length: int


@dataclass(frozen=True)
class BlockRef:
    """Block hash plus its number when already known.

    Ordering between two refs is only known through the chain (no local comparison).
    """

    hash: str
    number: int | None = None

    def label(self) -> str:
        """Human-readable block reference for messages."""
        if self.number is None:
            return self.hash
        return f"#{self.number} ({self.hash})"


@dataclass(frozen=True)
class ChainEvent:
    """A decoded runtime event: pallet, event name and positional arguments."""

    pallet: str
    name: str
    args: tuple[Any, ...] = ()

    def is_(self, pallet: str, name: str) -> bool:
        """Match by pallet (case-insensitive) and exact event name."""
        return self.pallet.lower() == pallet.lower() and self.name == name


@dataclass(frozen=True)
class StakeLedger:
    """Stake record of one (group, address) pair, keyed by the period of the last update."""

    entries: dict[int, int] = field(default_factory=dict)

    def latest(self) -> tuple[int, int] | None:
        """Returns (last_update_period, stake) of the entry with the highest period, if any."""
        if not self.entries:
            return None
        last_update_period = max(self.entries)
        return last_update_period, self.entries[last_update_period]


@dataclass(frozen=True)
class GroupConfig:
    """Solution group configuration at a pinned block."""

    namespace: str
    sla_voting_threshold: Decimal  # percent, e.g. Decimal("60.00")
    raw: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class RewardTotals:
    """Accumulated (subscription, voting) rewards in minor units (10**18 per EWT)."""

    subscription: int
    voting: int

    def __sub__(self, other: "RewardTotals") -> "RewardTotals":
        # No clamping: a negative component means the two blocks were picked wrongly.
        return RewardTotals(
            subscription=self.subscription - other.subscription,
            voting=self.voting - other.voting,
        )

    def is_negative(self) -> bool:
        """True if either component went down."""
        return self.subscription < 0 or self.voting < 0


ZERO_REWARDS = RewardTotals(subscription=0, voting=0)


class InitialBlockConfidence(str, Enum):
    """How the pre-distribution block was chosen."""

    EXACT = "exact"  # first block without EarnedRewardCalculated events
    DEGRADED = "degraded"  # every block in the window had the event; oldest one used
    FALLBACK = "fallback"  # nothing could be examined; block right before distribution


@dataclass(frozen=True)
class InitialBlock:
    block: BlockRef
    confidence: InitialBlockConfidence


@dataclass(frozen=True)
class StateSnapshot:
    """State facts needed for the analysis, all read at `block`."""

    block: BlockRef
    period: PeriodBounds
    group: GroupConfig
    eligible_rounds: int
    votes: int
    rewards: RewardTotals


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one analysis run."""

    period: PeriodBounds
    group: GroupConfig
    address: str
    eligible_rounds: int
    votes_submitted: int
    # None when there were no eligible rounds (ratio undefined).
    vote_ratio_percent: Decimal | None
    meets_sla: bool | None
    sla_threshold_percent: Decimal
    initial_rewards: RewardTotals
    final_rewards: RewardTotals
    period_rewards: RewardTotals
    initial_block: BlockRef
    final_block: BlockRef
    initial_confidence: InitialBlockConfidence
    system_voting_rounds: int | None = None
