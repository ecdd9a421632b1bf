from decimal import Decimal

import pytest

from ewx_rewards.analytics import analyze, meets_sla, vote_ratio_percent
from ewx_rewards.models import (
    BlockRef,
    GroupConfig,
    InitialBlockConfidence,
    PeriodBounds,
    RewardTotals,
    StateSnapshot,
)
from tests.fakes import ALICE, FINAL_REWARDS, GROUP, INITIAL_REWARDS

PERIOD = PeriodBounds(index=614, start=800, end=899, length=100)


def _snapshot(*, block: int, rewards, eligible=49, votes=61, threshold="60.00") -> StateSnapshot:
    return StateSnapshot(
        block=BlockRef(hash=f"0x{block:064x}", number=block),
        period=PERIOD,
        group=GroupConfig(namespace=GROUP, sla_voting_threshold=Decimal(threshold)),
        eligible_rounds=eligible,
        votes=votes,
        rewards=RewardTotals(*rewards),
    )


def test_period_rewards_are_the_exact_big_integer_delta():
    result = analyze(
        _snapshot(block=934, rewards=INITIAL_REWARDS), _snapshot(block=940, rewards=FINAL_REWARDS), address=ALICE
    )
    assert result.period_rewards == RewardTotals(223792384141068974, 1535257246929821022)
    assert result.initial_rewards == RewardTotals(*INITIAL_REWARDS)
    assert result.final_rewards == RewardTotals(*FINAL_REWARDS)


def test_negative_delta_is_not_clamped():
    result = analyze(_snapshot(block=1, rewards=(10, 5)), _snapshot(block=2, rewards=(3, 9)), address=ALICE)
    assert result.period_rewards == RewardTotals(-7, 4)
    assert result.period_rewards.is_negative()


@pytest.mark.parametrize(
    ("eligible", "votes", "ratio"),
    [
        (49, 61, Decimal("124.49")),
        (87, 61, Decimal("70.11")),
    ],
)
def test_sla_examples(eligible, votes, ratio):
    result = analyze(
        _snapshot(block=1, rewards=(0, 0), eligible=eligible, votes=votes),
        _snapshot(block=2, rewards=(0, 0), eligible=eligible, votes=votes),
        address=ALICE,
    )
    assert result.vote_ratio_percent.quantize(Decimal("0.01")) == ratio
    assert result.meets_sla is True


def test_no_eligible_rounds_means_ratio_is_undefined():
    assert vote_ratio_percent(5, 0) is None
    assert meets_sla(None, Decimal(60)) is None
    result = analyze(
        _snapshot(block=1, rewards=(0, 0), eligible=0, votes=0),
        _snapshot(block=2, rewards=(0, 0), eligible=0, votes=0),
        address=ALICE,
    )
    assert result.vote_ratio_percent is None
    assert result.meets_sla is None


def test_threshold_boundary_is_inclusive():
    assert meets_sla(Decimal(60), Decimal("60.00")) is True
    assert meets_sla(Decimal("59.99"), Decimal("60.00")) is False


def test_threshold_and_votes_come_from_initial_snapshot():
    initial = _snapshot(block=1, rewards=(0, 0), eligible=100, votes=55, threshold="50")
    final = _snapshot(block=2, rewards=(0, 0), eligible=100, votes=99, threshold="90")
    result = analyze(initial, final, address=ALICE)
    assert result.sla_threshold_percent == Decimal(50)
    assert result.votes_submitted == 55
    assert result.meets_sla is True
    assert result.group == final.group


def test_analysis_is_deterministic():
    initial = _snapshot(block=934, rewards=INITIAL_REWARDS)
    final = _snapshot(block=940, rewards=FINAL_REWARDS)
    first = analyze(initial, final, address=ALICE, initial_confidence=InitialBlockConfidence.DEGRADED)
    second = analyze(initial, final, address=ALICE, initial_confidence=InitialBlockConfidence.DEGRADED)
    assert first == second
    assert first.initial_block.number == 934
    assert first.final_block.number == 940
