"""Reward period arithmetic."""

from ewx_rewards.errors import FutureOrCurrentPeriodError, InvalidPeriodGeometryError
from ewx_rewards.models import PeriodBounds, PeriodDescriptor


def _is_block_number(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def period_bounds(current: PeriodDescriptor, target_index: int) -> PeriodBounds:
    """
    Derive the block range of `target_index` from the currently active period.

    Assumes every period between the target and the current one had `current.length` blocks.
    """
    if target_index > current.index:
        raise FutureOrCurrentPeriodError(
            f"Requested period {target_index} is in the future. Current period is {current.index}"
        )
    if not isinstance(current.length, int) or current.length <= 0:
        raise InvalidPeriodGeometryError(f"Invalid period length {current.length!r} for period {current.index}")

    periods_back = current.index - target_index
    start = current.first_block - periods_back * current.length
    end = start + current.length - 1
    if not (_is_block_number(start) and _is_block_number(end)):
        raise InvalidPeriodGeometryError(
            f"Invalid period block calculation: start={start}, end={end}. "
            f"Current period: {current.index} (first block {current.first_block}), "
            f"requested period: {target_index}, period length: {current.length}"
        )
    return PeriodBounds(index=target_index, start=start, end=end, length=current.length)


def next_period_start(current: PeriodDescriptor, target_index: int) -> int:
    """First block of the period right after `target_index`."""
    return period_bounds(current, target_index).end + 1
