"""Block-pinned chain reads on top of substrate-interface."""

from typing import TYPE_CHECKING, Any

from ewx_rewards.constants import ACTIVE_REWARD_PERIOD_INFO, SYSTEM_PALLET, WORKER_NODE_PALLET
from ewx_rewards.errors import TransientQueryError
from ewx_rewards.formatters import normalize_hex_str
from ewx_rewards.models import BlockRef, ChainEvent, PeriodDescriptor
from ewx_rewards.parsing import parse_event, parse_period_descriptor

if TYPE_CHECKING:
    from substrateinterface import SubstrateInterface  # pragma: no cover


class ChainClient:
    """
    Read-only view of a Substrate node.

    Every read takes an explicit block, so nothing depends on what "latest" happens to be when
    the request lands. Failures of the underlying library surface as TransientQueryError.
    """

    def __init__(self, substrate: "SubstrateInterface") -> None:
        self._substrate = substrate
        self._storage_support: dict[tuple[str, str], bool] = {}

    @classmethod
    def connect(cls, url: str) -> "ChainClient":
        """Open a websocket/HTTP connection to the node at `url`."""
        from substrateinterface import SubstrateInterface  # pylint: disable=import-outside-toplevel

        try:
            return cls(SubstrateInterface(url=url))
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise TransientQueryError(f"failed to connect to {url}: {ex}") from ex

    def close(self) -> None:
        """Close the node connection."""
        self._substrate.close()

    def get_block_hash(self, number: int) -> BlockRef:
        """Canonical hash of block `number`; a missing block is a TransientQueryError."""
        try:
            block_hash = self._substrate.get_block_hash(number)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise TransientQueryError(f"getBlockHash({number}) failed: {ex}") from ex
        if block_hash is None:
            raise TransientQueryError(f"block {number} does not exist")
        return BlockRef(hash=normalize_hex_str(block_hash), number=number)

    def get_block_number(self, ref: BlockRef) -> int:
        """Number of the block behind `ref`, asking the node only when it is not known yet."""
        if ref.number is not None:
            return ref.number
        try:
            number = self._substrate.get_block_number(ref.hash)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise TransientQueryError(f"getHeader({ref.hash}) failed: {ex}") from ex
        if number is None:
            raise TransientQueryError(f"block {ref.hash} is unknown to the node")
        return int(number)

    def resolve(self, ref: BlockRef) -> BlockRef:
        """Return `ref` with its block number filled in."""
        return BlockRef(hash=ref.hash, number=self.get_block_number(ref))

    def get_events(self, ref: BlockRef) -> list[ChainEvent]:
        """Decoded System.Events of the block."""
        try:
            records = self._substrate.get_events(block_hash=ref.hash)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise TransientQueryError(f"{SYSTEM_PALLET}.Events at {ref.label()} failed: {ex}") from ex
        try:
            return [parse_event(record) for record in records]
        except (KeyError, ValueError) as ex:
            raise TransientQueryError(f"undecodable event at {ref.label()}: {ex}") from ex

    def read_storage(self, ref: BlockRef, item: str, params: list[Any] | None = None) -> Any:
        """Read one storage value at `ref`; returns None when the item is absent."""
        try:
            result = self._substrate.query(
                module=WORKER_NODE_PALLET,
                storage_function=item,
                params=params or [],
                block_hash=ref.hash,
            )
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise TransientQueryError(f"{WORKER_NODE_PALLET}.{item}{params or ''} at {ref.label()} failed: {ex}") from ex
        return None if result is None else result.value

    def read_storage_entries(
        self, ref: BlockRef, item: str, params: list[Any] | None = None, *, page_size: int = 100
    ) -> list[tuple[Any, Any]]:
        """Read every (key, value) entry of a map under the given partial key at `ref`."""
        try:
            entries = self._substrate.query_map(
                module=WORKER_NODE_PALLET,
                storage_function=item,
                params=params or [],
                block_hash=ref.hash,
                page_size=page_size,
            )
            return [(getattr(k, "value", k), getattr(v, "value", v)) for k, v in entries]
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise TransientQueryError(
                f"{WORKER_NODE_PALLET}.{item}{params or ''} entries at {ref.label()} failed: {ex}"
            ) from ex

    def has_storage(self, item: str) -> bool:
        """Whether the runtime declares `item`; asked once per item and remembered for the run."""
        key = (WORKER_NODE_PALLET, item)
        if key not in self._storage_support:
            try:
                storage = self._substrate.get_metadata_storage_function(WORKER_NODE_PALLET, item)
            except Exception as ex:  # pylint: disable=broad-exception-caught
                raise TransientQueryError(f"metadata lookup for {WORKER_NODE_PALLET}.{item} failed: {ex}") from ex
            self._storage_support[key] = storage is not None
        return self._storage_support[key]

    def latest_block(self) -> BlockRef:
        """Current chain head, with its number."""
        try:
            block_hash = self._substrate.get_chain_head()
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise TransientQueryError(f"getChainHead failed: {ex}") from ex
        return self.resolve(BlockRef(hash=normalize_hex_str(block_hash)))

    def read_active_period(self, ref: BlockRef) -> PeriodDescriptor:
        """ActiveRewardPeriodInfo as seen at `ref`."""
        value = self.read_storage(ref, ACTIVE_REWARD_PERIOD_INFO)
        if value is None:
            raise TransientQueryError(f"{ACTIVE_REWARD_PERIOD_INFO} is empty at {ref.label()}")
        try:
            return parse_period_descriptor(value)
        except (KeyError, ValueError) as ex:
            raise TransientQueryError(f"undecodable {ACTIVE_REWARD_PERIOD_INFO} at {ref.label()}: {ex}") from ex
