"""Run configuration: built once from CLI flags and environment, then passed to every stage."""

import argparse
import re
from collections.abc import Mapping
from dataclasses import dataclass

from ewx_rewards.constants import (
    DEFAULT_INDEXER_TIMEOUT_S,
    DEFAULT_NODE_URL,
    DEFAULT_SCAN_TIMEOUT_S,
    INDEXER_SEARCH_WINDOW_BLOCKS,
    INITIAL_STATE_SEARCH_BLOCKS,
)
from ewx_rewards.errors import ValidationError
from ewx_rewards.formatters import normalize_hex_str

_BLOCK_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything one analysis run needs to know about its inputs and limits."""

    period_index: int
    group_namespace: str
    address: str
    rpc_url: str = DEFAULT_NODE_URL
    pinned_block_hash: str | None = None
    indexer_url: str | None = None
    indexer_timeout_s: int = DEFAULT_INDEXER_TIMEOUT_S
    indexer_window_blocks: int = INDEXER_SEARCH_WINDOW_BLOCKS
    backward_window_blocks: int = INITIAL_STATE_SEARCH_BLOCKS
    scan_timeout_s: float = DEFAULT_SCAN_TIMEOUT_S
    verbose: bool = False


def _parse_period_index(raw: str | int | None) -> int:
    if raw is None or str(raw).strip() == "":
        raise ValidationError("REWARD_PERIOD_INDEX is required (use --period or set REWARD_PERIOD_INDEX)")
    try:
        value = int(str(raw).strip())
    except ValueError as ex:
        raise ValidationError(f"REWARD_PERIOD_INDEX must be a positive integer, but got: {raw!r}") from ex
    if value <= 0:
        raise ValidationError(f"REWARD_PERIOD_INDEX must be a positive integer, but got: {value}")
    return value


def _parse_non_empty(name: str, raw: str | None) -> str:
    if raw is None or raw.strip() == "":
        raise ValidationError(f"{name} is required and must be a non-empty string, but got: {raw!r}")
    return raw.strip()


def is_valid_address(address: str) -> bool:
    """SS58 check via substrate-interface."""
    from substrateinterface.utils.ss58 import is_valid_ss58_address  # pylint: disable=import-outside-toplevel

    return bool(is_valid_ss58_address(address))


def load_config(args: argparse.Namespace, env: Mapping[str, str]) -> AnalysisConfig:
    """
    Merge CLI flags with environment variables (flags win) and validate the result.

    Raises ValidationError on the first invalid or missing parameter.
    """
    period_index = _parse_period_index(args.period if args.period is not None else env.get("REWARD_PERIOD_INDEX"))
    group_namespace = _parse_non_empty("GROUP_NAMESPACE", args.group or env.get("GROUP_NAMESPACE"))
    address = _parse_non_empty("ADDRESS", args.address or env.get("ADDRESS"))
    if not is_valid_address(address):
        raise ValidationError(f"ADDRESS is not a valid SS58 address: {address}")

    pinned = args.block_hash or env.get("SPECIFIC_BLOCK_HASH") or None
    if pinned is not None:
        pinned = pinned.strip()
        if not _BLOCK_HASH_RE.match(pinned):
            raise ValidationError(f"SPECIFIC_BLOCK_HASH must be a 0x-prefixed 32-byte hex hash, but got: {pinned}")
        pinned = normalize_hex_str(pinned)

    scan_timeout_raw = args.scan_timeout if args.scan_timeout is not None else env.get("SCAN_TIMEOUT_S")
    try:
        scan_timeout_s = float(scan_timeout_raw) if scan_timeout_raw not in (None, "") else DEFAULT_SCAN_TIMEOUT_S
    except ValueError as ex:
        raise ValidationError(f"SCAN_TIMEOUT_S must be a number of seconds, but got: {scan_timeout_raw!r}") from ex
    if scan_timeout_s < 0:
        raise ValidationError(f"SCAN_TIMEOUT_S must be >= 0, but got: {scan_timeout_s}")

    return AnalysisConfig(
        period_index=period_index,
        group_namespace=group_namespace,
        address=address,
        rpc_url=args.rpc_url or env.get("NODE_URL") or DEFAULT_NODE_URL,
        pinned_block_hash=pinned,
        indexer_url=(args.indexer_url or env.get("INDEXER_URL") or None),
        scan_timeout_s=scan_timeout_s,
        verbose=bool(args.verbose),
    )
