"""Constants and configuration for reward period analysis."""

from decimal import Decimal

DEFAULT_NODE_URL = "wss://public-rpc.mainnet.energywebx.com"

# Pallet that owns reward periods, stake records, voting counters and rewards.
WORKER_NODE_PALLET = "WorkerNodePallet"
SYSTEM_PALLET = "System"

# Storage items (names as they appear in runtime metadata).
ACTIVE_REWARD_PERIOD_INFO = "ActiveRewardPeriodInfo"
SOLUTION_GROUP_STAKE_RECORDS = "SolutionGroupStakeRecords"
SYSTEM_VOTING_ROUND = "SystemVotingRound"
NUMBER_OF_VOTINGS = "NumberOfVotings"
NUMBER_OF_VOTINGS_WITH_NOMINATION = "NumberOfVotingsWithNomination"
NUMBER_OF_OPERATOR_VOTINGS_WITH_NOMINATION = "NumberOfOperatorVotingsWithNomination"
VOTE_METADATA = "VoteMetadata"
SOLUTIONS_GROUPS = "SolutionsGroups"
EARNED_REWARDS = "EarnedRewards"

# Events.
REWARDS_CALCULATED_EVENT = "RewardsCalculatedForPeriod"
EARNED_REWARD_CALCULATED_EVENT = "EarnedRewardCalculated"
# Name under which the indexer stores the distribution event.
INDEXER_DISTRIBUTION_EVENT = f"{WORKER_NODE_PALLET}.{REWARDS_CALCULATED_EVENT}"

# The distribution event is expected within this many blocks after the next period starts.
INDEXER_SEARCH_WINDOW_BLOCKS = 2000
# How far back from the distribution block to look for the pre-distribution state.
INITIAL_STATE_SEARCH_BLOCKS = 50
# Wall-clock budget for the bounded chain scan (seconds). 0 disables the budget.
DEFAULT_SCAN_TIMEOUT_S = 900
DEFAULT_INDEXER_TIMEOUT_S = 30
SYSTEM_VOTING_ROUND_PAGE_SIZE = 500

# EWT has 18 decimals; reports show 6 fractional digits.
UNITS_PER_EWT = 10**18
DISPLAY_FRACTION_DIVISOR = 10**12
DISPLAY_FRACTION_DIGITS = 6

# SLA thresholds are stored as Perbill (parts per billion).
PERBILL_PER_PERCENT = Decimal(10**7)
PERCENT = Decimal(100)
