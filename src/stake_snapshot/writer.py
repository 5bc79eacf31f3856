"""
Snapshot persistence.

Artifacts are JSON with sorted keys and DID-sorted credentials, so two
snapshots of the same block and threshold serialize to identical bytes.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from .models import SnapshotDocument

logger = logging.getLogger(__name__)

ARTIFACT_PREFIX = "stakingSnapshot_"


def dumps(document: SnapshotDocument) -> str:
    return json.dumps(document.to_dict(), ensure_ascii=False, sort_keys=True, indent=1) + "\n"


class SnapshotWriter:
    def __init__(self, output_dir: Union[str, Path], clock: Optional[Callable[[], datetime]] = None) -> None:
        self.output_dir = Path(output_dir)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def artifact_name(self) -> str:
        return f"{ARTIFACT_PREFIX}{self._clock().strftime('%Y-%m-%dT%H-%M-%S.%fZ')}.json"

    def write(self, document: SnapshotDocument) -> Optional[str]:
        """Persist `document`; returns the artifact name, or None when nothing qualified."""
        if document.is_empty:
            logger.info("no credential qualified at block %d; nothing written", document.snapshot_block)
            return None
        self.output_dir.mkdir(parents=True, exist_ok=True)
        name = self.artifact_name()
        path = self.output_dir / name
        # exclusive create: never overwrite an earlier artifact
        with path.open("x", encoding="utf-8") as f:
            f.write(dumps(document))
        logger.info("wrote %d credential(s) to %s", len(document.credentials), path)
        return name

    def path_of(self, artifact_id: str) -> Path:
        return self.output_dir / artifact_id

    def read(self, artifact_id: str) -> Dict[str, Any]:
        with self.path_of(artifact_id).open("r", encoding="utf-8") as f:
            return json.load(f)
