"""CLI and main logic."""

import argparse
import os
import sys

from dotenv import load_dotenv

from ewx_rewards.analytics import analyze
from ewx_rewards.chain import ChainClient
from ewx_rewards.config import AnalysisConfig, load_config
from ewx_rewards.console import info, print_analysis_report
from ewx_rewards.errors import AnalysisError, ValidationError, run_stage
from ewx_rewards.initial_state import locate_initial_block
from ewx_rewards.locator import locate_distribution_block
from ewx_rewards.models import AnalysisResult, InitialBlockConfidence
from ewx_rewards.snapshot import count_system_voting_rounds, read_snapshot
from ewx_rewards.validation import validate_subscription


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments. Every flag falls back to an environment variable."""
    p = argparse.ArgumentParser(
        description="Reward and SLA analysis of one address in one solution group for one reward period."
    )
    p.add_argument("--period", type=int, default=None, help="Reward period index (env: REWARD_PERIOD_INDEX).")
    p.add_argument("--group", default=None, help="Solution group namespace (env: GROUP_NAMESPACE).")
    p.add_argument("--address", default=None, help="Operator SS58 address (env: ADDRESS).")
    p.add_argument("--rpc-url", default=None, help="Node websocket URL (env: NODE_URL). Default: EWX mainnet.")
    p.add_argument(
        "--block-hash",
        default=None,
        help="Block known to contain RewardsCalculatedForPeriod for the period (env: SPECIFIC_BLOCK_HASH). "
        "Skips every other lookup.",
    )
    p.add_argument("--indexer-url", default=None, help="GraphQL indexer endpoint (env: INDEXER_URL).")
    p.add_argument(
        "--scan-timeout",
        type=float,
        default=None,
        help="Wall-clock budget in seconds for the block-by-block scan, 0 for none (env: SCAN_TIMEOUT_S).",
    )
    p.add_argument("--verbose", action="store_true", help="Print lookup details.")
    return p.parse_args(argv)


def run_analysis(chain: ChainClient, config: AnalysisConfig) -> AnalysisResult:
    """Run every stage against an open connection. Any failure aborts the whole run."""
    with run_stage("period"):
        current = chain.read_active_period(chain.latest_block())
        info(f"ℹ️ Current reward period: {current.index} (first block {current.first_block}, length {current.length})")

    with run_stage("subscription"):
        validate_subscription(chain, config, current)

    with run_stage("distribution-block"):
        final_ref = locate_distribution_block(chain, config, current)

    with run_stage("initial-block"):
        info("🔍 Finding block before RewardsCalculatedForPeriod for initial state...")
        initial = locate_initial_block(chain, config, final_ref)

    with run_stage("snapshot"):
        info("🔍 Querying historical state...")
        initial_snapshot = read_snapshot(
            chain,
            config,
            initial.block,
            allow_missing_rewards=initial.confidence is InitialBlockConfidence.FALLBACK,
        )
        final_snapshot = read_snapshot(chain, config, final_ref)
        system_rounds = count_system_voting_rounds(chain, config, current, config.period_index)

    return analyze(
        initial_snapshot,
        final_snapshot,
        address=config.address,
        initial_confidence=initial.confidence,
        system_voting_rounds=system_rounds,
    )


def main(argv: list[str]) -> int:
    """Main entry point."""
    load_dotenv(".env")
    args = parse_args(argv)

    try:
        config = load_config(args, os.environ)
    except ValidationError as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 2

    info(f"ℹ️ Connecting to {config.rpc_url}...")
    try:
        chain = ChainClient.connect(config.rpc_url)
    except AnalysisError as ex:
        print(f"Error: {ex}", file=sys.stderr)
        return 2

    try:
        result = run_analysis(chain, config)
    except AnalysisError as ex:
        print(f"❌ [{ex.stage or 'analysis'}] {ex}", file=sys.stderr)
        return 1
    finally:
        chain.close()
        info("ℹ️ Disconnected from node")

    print_analysis_report(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
