"""Console output: progress messages and the analysis report."""

import json
import sys
from typing import TYPE_CHECKING

from tqdm import tqdm

from ewx_rewards.formatters import format_block_range, format_ewt, format_percent, verdict
from ewx_rewards.models import AnalysisResult, InitialBlockConfidence, RewardTotals

if TYPE_CHECKING:
    from ewx_rewards.config import AnalysisConfig  # pragma: no cover


def info(message: str) -> None:
    """Progress line on stderr that does not break an active progress bar."""
    tqdm.write(message, file=sys.stderr)


def debug(config: "AnalysisConfig", message: str) -> None:
    """Detail line, shown only with --verbose."""
    if config.verbose:
        tqdm.write(f"   · {message}", file=sys.stderr)


def _print_rewards(title: str, rewards: RewardTotals, *, with_fraction: bool) -> None:
    print(f"{title}")
    print(f"   • Subscription: {rewards.subscription}  ({format_ewt(rewards.subscription, with_fraction=with_fraction)})")
    print(f"   • Voting:       {rewards.voting}  ({format_ewt(rewards.voting, with_fraction=with_fraction)})")


def print_analysis_report(result: AnalysisResult) -> None:
    """Print the analysis report to stdout."""
    print("=" * 70)
    print("📊 REWARD PERIOD ANALYSIS REPORT")
    print("=" * 70)
    print(f"Reward Period Index: {result.period.index}")
    print(f"Group Namespace:     {result.group.namespace}")
    print(f"Address:             {result.address}")
    print("─" * 70)

    print("🗓️  Period Info:")
    print(f"   Blocks: {format_block_range(result.period.start, result.period.end)}")
    print(f"   Length: {result.period.length}")
    if result.system_voting_rounds is not None:
        print(f"   System voting rounds (all groups): {result.system_voting_rounds}")
    print("👥 Group Info:")
    print("   " + json.dumps(result.group.raw, indent=2, default=str, ensure_ascii=False).replace("\n", "\n   "))
    print("─" * 70)

    print(f"🔗 Initial state block: {result.initial_block.label()}")
    if result.initial_confidence is InitialBlockConfidence.DEGRADED:
        print("   ⚠️  Every block in the search window had EarnedRewardCalculated; using the oldest one")
    elif result.initial_confidence is InitialBlockConfidence.FALLBACK:
        print("   ⚠️  No block could be examined; using the block right before distribution")
    print(f"🔗 Distribution block:  {result.final_block.label()}")
    print("─" * 70)

    print(f"Eligible Rounds:  {result.eligible_rounds}")
    print(f"Votes Submitted:  {result.votes_submitted}")
    print(f"SLA Threshold:    {format_percent(result.sla_threshold_percent)}")
    if 0 < result.sla_threshold_percent < 1:
        print("   ⚠️  Threshold below 1%: the raw value may not be Perbill; check the Group Info above")
    if result.vote_ratio_percent is None:
        print("Vote Ratio:       N/A (no eligible rounds)")
    else:
        print(f"Vote Ratio:       {format_percent(result.vote_ratio_percent)}")
    emoji, label = verdict(result.meets_sla)
    print(f"Meets SLA:        {emoji} {label}")
    print("─" * 70)

    _print_rewards("💰 Initial Rewards:", result.initial_rewards, with_fraction=False)
    _print_rewards("💰 Final Rewards (after distribution):", result.final_rewards, with_fraction=False)
    _print_rewards("🏆 Period Rewards Earned:", result.period_rewards, with_fraction=True)
    if result.period_rewards.is_negative():
        print("   ⚠️  Negative reward delta: the initial/final blocks are probably wrong for this period")
    print("=" * 70)
