"""Reward and SLA analysis over a pre/post distribution snapshot pair.

Pure functions: the same two snapshots always give the same result.
"""

from decimal import Decimal

from ewx_rewards.constants import PERCENT
from ewx_rewards.models import AnalysisResult, InitialBlockConfidence, StateSnapshot


def vote_ratio_percent(votes: int, eligible_rounds: int) -> Decimal | None:
    """votes / eligible_rounds as a percentage; undefined (None) without eligible rounds."""
    if eligible_rounds == 0:
        return None
    return Decimal(votes) / Decimal(eligible_rounds) * PERCENT


def meets_sla(ratio: Decimal | None, threshold_percent: Decimal) -> bool | None:
    """ratio >= threshold; undefined (None) when the ratio is."""
    if ratio is None:
        return None
    return ratio >= threshold_percent


def analyze(
    initial: StateSnapshot,
    final: StateSnapshot,
    *,
    address: str,
    initial_confidence: InitialBlockConfidence = InitialBlockConfidence.EXACT,
    system_voting_rounds: int | None = None,
) -> AnalysisResult:
    """
    Combine the two snapshots into the period's reward delta and SLA verdict.

    Voting figures and the SLA threshold come from the initial (pre-distribution) snapshot;
    period and group info for the report come from the final one.
    """
    ratio = vote_ratio_percent(initial.votes, initial.eligible_rounds)
    threshold = initial.group.sla_voting_threshold
    return AnalysisResult(
        period=final.period,
        group=final.group,
        address=address,
        eligible_rounds=initial.eligible_rounds,
        votes_submitted=initial.votes,
        vote_ratio_percent=ratio,
        meets_sla=meets_sla(ratio, threshold),
        sla_threshold_percent=threshold,
        initial_rewards=initial.rewards,
        final_rewards=final.rewards,
        period_rewards=final.rewards - initial.rewards,
        initial_block=initial.block,
        final_block=final.block,
        initial_confidence=initial_confidence,
        system_voting_rounds=system_voting_rounds,
    )
