"""Exception types raised by the analysis stages."""

from collections.abc import Iterator
from contextlib import contextmanager


class AnalysisError(Exception):
    """Base class for every failure that aborts an analysis run.

    `stage` names the workflow step the error escaped from (set by `run_stage`).
    """

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class ValidationError(AnalysisError, ValueError):
    """Bad or missing input parameters."""


class NotSubscribedError(AnalysisError):
    """The address held no qualifying stake in the group for the period."""

    def __init__(self, message: str, *, stake_value: int = 0, last_update_period: int | None = None) -> None:
        super().__init__(message)
        self.stake_value = stake_value
        self.last_update_period = last_update_period


class FutureOrCurrentPeriodError(AnalysisError):
    """The requested period is ahead of the chain's active period."""


class CurrentPeriodNotFinalizedError(AnalysisError):
    """The requested period has not ended, so its rewards cannot have been distributed."""


class PinnedBlockMismatchError(AnalysisError):
    """The caller-supplied block does not carry the distribution event for the period."""


class EventNotFoundError(AnalysisError):
    """No strategy found the distribution event."""

    def __init__(self, message: str, *, target_index: int, scanned_range: tuple[int, int] | None = None) -> None:
        super().__init__(message)
        self.target_index = target_index
        self.scanned_range = scanned_range


class ScanBudgetExceededError(EventNotFoundError):
    """The bounded chain scan ran out of its wall-clock budget."""


class GroupNotFoundError(AnalysisError):
    """The solution group has no configuration at the queried block."""


class InvalidPeriodGeometryError(AnalysisError):
    """Period arithmetic produced impossible block numbers."""


class TransientQueryError(AnalysisError):
    """A single block or storage read failed."""


class MissingStateError(AnalysisError):
    """A storage item required for the analysis is absent at the queried block."""


class IndexerError(AnalysisError):
    """The external indexer could not be queried or returned an unusable answer."""


@contextmanager
def run_stage(stage: str) -> Iterator[None]:
    """Tag analysis errors escaping the block with `stage` (keeps an already set stage)."""
    try:
        yield
    except AnalysisError as ex:
        if ex.stage is None:
            ex.stage = stage
        raise
