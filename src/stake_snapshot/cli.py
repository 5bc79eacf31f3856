"""
Command line entry point.

Usage:
  stake-snapshot --block 1234567 --min-balance 700 --slot 3
  stake-snapshot --chain-id 73799 --layout-file build-info.json

Every flag falls back to its environment variable (see config.py); the
target block defaults to the node's latest block.
Exit status: 0 on success (including "nothing qualified"), 1 on any
snapshot error.
"""
import argparse
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from .config import SnapshotSettings, load_settings
from .engine import SnapshotEngine
from .errors import SnapshotError
from .progress import ProgressBar
from .rpc import RpcClient
from .writer import SnapshotWriter

logger = logging.getLogger(__name__)


def amount(value: str) -> Decimal:
    try:
        parsed = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"{value!r} is not a number") from None
    if not parsed.is_finite():
        raise argparse.ArgumentTypeError(f"{value!r} is not a finite number")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stake-snapshot",
        description="Snapshot the stakers of a staking pool holding at least a minimum balance at a given block.",
    )
    parser.add_argument("--chain-id", type=int, help="chain identifier (CHAIN_ID)")
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint, an archive node (RPC_URL)")
    parser.add_argument("--pool", dest="registry_address", help="staking pool address (STAKINGPOOL)")
    parser.add_argument("--from-block", dest="start_block", type=int, help="first block of the log scan (SNAPSHOT_START_BLOCK)")
    parser.add_argument("--block", dest="end_block", type=int, help="snapshot block (SNAPSHOT_END_BLOCK, default latest)")
    parser.add_argument("--min-balance", type=amount, help="minimum stake (SNAPSHOT_MIN_BALANCE)")
    parser.add_argument("--namespace", help="credential namespace (SNAPSHOT_NAMESPACE)")
    parser.add_argument("--slot", dest="stakes_slot", type=int, help="base storage slot of `stakes` (SNAPSHOT_STAKES_SLOT)")
    parser.add_argument("--layout-file", help="compiler output carrying storageLayout (SNAPSHOT_LAYOUT_FILE)")
    parser.add_argument("--output-dir", help="artifact directory (SNAPSHOT_OUTPUT_DIR)")
    parser.add_argument("--max-workers", type=int, help="concurrent storage reads (SNAPSHOT_MAX_WORKERS)")
    parser.add_argument("--max-attempts", type=int, help="probe passes before giving up, 0 = forever (SNAPSHOT_MAX_ATTEMPTS)")
    parser.add_argument("--log-level", help="logging level (LOG_LEVEL)")
    parser.add_argument("--log-file", help="append logs to this file (LOG_FILE)")
    parser.add_argument("--no-progress", action="store_true", help="disable the progress bar")
    return parser


def configure_logging(settings: SnapshotSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        filename=settings.log_file,
        filemode="a",
    )


def run(settings: SnapshotSettings, *, show_progress: bool = True) -> Optional[Path]:
    layout = settings.layout_provider()
    with RpcClient(settings.endpoint(), timeout=settings.rpc_timeout, pool_size=max(settings.max_workers, 1)) as client:
        target_block = settings.end_block if settings.end_block is not None else client.block_number()
        request = settings.request(target_block)
        progress = ProgressBar("probe") if show_progress else None
        engine = SnapshotEngine(
            client,
            layout,
            max_workers=settings.max_workers,
            max_attempts=settings.max_attempts,
            backoff=settings.backoff,
            on_progress=progress,
        )
        try:
            document = engine.take_snapshot(request)
        finally:
            if progress is not None:
                progress.finish()

    writer = SnapshotWriter(settings.output_dir)
    artifact = writer.write(document)
    return writer.path_of(artifact) if artifact else None


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings().override(
            chain_id=args.chain_id,
            rpc_url=args.rpc_url,
            registry_address=args.registry_address,
            start_block=args.start_block,
            end_block=args.end_block,
            min_balance=args.min_balance,
            namespace=args.namespace,
            stakes_slot=args.stakes_slot,
            layout_file=args.layout_file,
            output_dir=args.output_dir,
            max_workers=args.max_workers,
            max_attempts=args.max_attempts,
            log_level=args.log_level.upper() if args.log_level else None,
            log_file=args.log_file,
        )
    except SnapshotError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings)
    try:
        path = run(settings, show_progress=not args.no_progress and sys.stdout.isatty())
    except SnapshotError as e:
        logger.error("snapshot failed: %s", e)
        return 1

    if path is None:
        print("No staker met the minimum balance; no snapshot written.")
    else:
        print("snapshot file:", str(path))
    return 0
