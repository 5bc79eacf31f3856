"""
Storage layout lookup: (entity, field) -> base slot index.

The probe only needs the base slot of the `stakes` mapping. Where it comes
from (a hard-coded number, a solc `storageLayout` section, a hardhat
build-info file) is hidden behind StorageLayoutProvider.
"""
import json
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Protocol, Tuple, Union

from .errors import ConfigurationError


class StorageLayoutProvider(Protocol):
    def slot_of(self, entity: str, field: str) -> int:
        ...


def _as_slot(value: Any) -> int:
    try:
        slot = int(value, 0) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"invalid slot index: {value!r}") from None
    if isinstance(value, bool) or slot < 0:
        raise ConfigurationError(f"invalid slot index: {value!r}")
    return slot


class StaticLayoutProvider:
    def __init__(self, slots: Mapping[Tuple[str, str], Union[int, str]]) -> None:
        self._slots = {key: _as_slot(slot) for key, slot in slots.items()}

    def slot_of(self, entity: str, field: str) -> int:
        try:
            return self._slots[(entity, field)]
        except KeyError:
            raise ConfigurationError(f"no storage slot known for {entity}.{field}") from None


class ArtifactLayoutProvider(StaticLayoutProvider):
    """
    Reads `storageLayout` from compiler output.

    Accepted documents:
      - a bare layout: {"storage": [{"contract": "path:Name", "label": ..., "slot": ...}]}
      - solc standard-JSON output: {"contracts": {path: {Name: {"storageLayout": ...}}}}
      - hardhat build-info: {"output": {"contracts": ...}}
      - a contract artifact embedding {"storageLayout": ...}
    """

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ArtifactLayoutProvider":
        try:
            with Path(path).open("r", encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"cannot read storage layout from {path}: {e}") from e
        return cls.from_document(doc)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ArtifactLayoutProvider":
        slots: Dict[Tuple[str, str], int] = {}
        for entry in _storage_entries(doc):
            contract = str(entry.get("contract", ""))
            entity = contract.rsplit(":", 1)[-1]
            label = entry.get("label")
            if not entity or not label or "slot" not in entry:
                continue
            slots[(entity, label)] = _as_slot(entry["slot"])
        if not slots:
            raise ConfigurationError("document carries no storageLayout entries")
        return cls(slots)


def _storage_entries(doc: Any) -> Iterator[Dict[str, Any]]:
    if not isinstance(doc, dict):
        return
    if isinstance(doc.get("storage"), list):
        yield from doc["storage"]
    if isinstance(doc.get("storageLayout"), dict):
        yield from _storage_entries(doc["storageLayout"])
    if isinstance(doc.get("output"), dict):
        yield from _storage_entries(doc["output"])
    contracts = doc.get("contracts")
    if isinstance(contracts, dict):
        for per_file in contracts.values():
            if not isinstance(per_file, dict):
                continue
            for compiled in per_file.values():
                yield from _storage_entries(compiled)
