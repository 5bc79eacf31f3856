"""
Candidate discovery from StakeAdded logs.

One eth_getLogs round trip over [from_block, target_block]; no pagination.
Failures are fatal here: discovery runs once per snapshot and should fail
loudly rather than retry.
"""
import logging
from typing import Any, Dict, List, Set

from eth_utils import event_signature_to_log_topic

from .errors import DiscoveryError, RpcError
from .models import EventRecord
from .utils import hex_to_int, normalize_address, topic_to_address

logger = logging.getLogger(__name__)

# StakeAdded(address indexed sender, uint256 amount, uint256 time)
STAKE_ADDED_TOPIC = "0x270d6dd254edd1d985c81cf7861b8f28fb06b6d719df04d90464034d43412440"


def event_topic(signature: str) -> str:
    """topics[0] for an event signature such as 'StakeAdded(address,uint256,uint256)'."""
    return "0x" + event_signature_to_log_topic(signature).hex()


class LogScanner:
    def __init__(self, client) -> None:
        self._client = client

    def fetch_records(self, registry_address: str, topic: str, target_block: int, from_block: int = 0) -> List[EventRecord]:
        registry = normalize_address(registry_address)
        try:
            logs = self._client.get_logs(registry, [topic], from_block, target_block)
        except RpcError as e:
            raise DiscoveryError(f"log scan of {registry} up to block {target_block} failed: {e}") from e

        records: List[EventRecord] = []
        for lg in logs:
            record = _to_record(lg)
            # some nodes treat toBlock as exclusive or inclusive inconsistently
            if record.block_number > target_block:
                logger.debug("dropping %s event at block %d > %d", record.address, record.block_number, target_block)
                continue
            records.append(record)
        return records

    def scan(self, registry_address: str, topic: str, target_block: int, from_block: int = 0) -> Set[str]:
        records = self.fetch_records(registry_address, topic, target_block, from_block)
        candidates = {r.address for r in records}
        logger.info("scan: %d event(s), %d candidate(s) up to block %d", len(records), len(candidates), target_block)
        return candidates


def _to_record(lg: Dict[str, Any]) -> EventRecord:
    try:
        topics = lg.get("topics") or []
        return EventRecord(
            address=topic_to_address(topics[1]),
            block_number=hex_to_int(lg.get("blockNumber")),
            transaction_hash=(lg.get("transactionHash") or "").lower(),
        )
    except (AttributeError, IndexError, TypeError, ValueError) as e:
        raise DiscoveryError(f"malformed log record: {lg!r}") from e
