"""External indexer (GraphQL) lookups for the distribution event."""

from typing import Any

import requests

from ewx_rewards.constants import INDEXER_DISTRIBUTION_EVENT
from ewx_rewards.errors import IndexerError
from ewx_rewards.formatters import as_int

DISTRIBUTION_EVENTS_QUERY = f"""query {{
  events(
    where: {{ name_eq: "{INDEXER_DISTRIBUTION_EVENT}" }},
    orderBy: blockNumber_DESC
  ) {{
    name
    blockNumber
  }}
}}"""


def fetch_distribution_events(indexer_url: str, *, timeout_s: int) -> list[int]:
    """Block numbers of every distribution event the indexer knows about, newest first."""
    try:
        resp = requests.post(
            indexer_url,
            json={"query": DISTRIBUTION_EVENTS_QUERY},
            headers={"Content-Type": "application/json"},
            timeout=timeout_s,
        )
        resp.raise_for_status()
        data: Any = resp.json()
    except (requests.RequestException, ValueError) as ex:
        raise IndexerError(f"indexer request to {indexer_url} failed: {ex}") from ex

    if not isinstance(data, dict):
        raise IndexerError(f"unexpected indexer response: {data!r}")
    if data.get("errors"):
        raise IndexerError(f"GraphQL errors: {data['errors']}")

    payload = data.get("data") or {}
    if not isinstance(payload, dict):
        raise IndexerError(f"unexpected indexer data: {payload!r}")
    events = payload.get("events") or []
    if not isinstance(events, list):
        raise IndexerError(f"unexpected indexer events: {events!r}")
    try:
        return [as_int(event["blockNumber"]) for event in events]
    except (KeyError, TypeError, ValueError) as ex:
        raise IndexerError(f"unexpected indexer event entry: {ex}") from ex


def pick_block_in_window(block_numbers: list[int], *, window_start: int, window_blocks: int) -> int | None:
    """First block number inside [window_start, window_start + window_blocks], in the given order."""
    window_end = window_start + window_blocks
    for block_number in block_numbers:
        if window_start <= block_number <= window_end:
            return block_number
    return None
