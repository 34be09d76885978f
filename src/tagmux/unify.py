"""
Canonical view over the raw entries of every tag block in a container.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .keys import normalize_key
from .model import BlockKind, ContainerKind, PropertyEntry

logger = logging.getLogger(__name__)

# Which tag blocks each container can physically carry, in priority order
CONTAINER_BLOCKS: Dict[ContainerKind, List[BlockKind]] = {
    ContainerKind.MPEG: [BlockKind.ID3V2, BlockKind.APE, BlockKind.ID3V1],
    ContainerKind.WAV: [BlockKind.ID3V2],
    ContainerKind.AIFF: [BlockKind.ID3V2],
    ContainerKind.FLAC: [BlockKind.XIPH],
    ContainerKind.OGG_VORBIS: [BlockKind.XIPH],
    ContainerKind.OGG_OPUS: [BlockKind.XIPH],
    ContainerKind.OGG_SPEEX: [BlockKind.XIPH],
    ContainerKind.OGG_FLAC: [BlockKind.XIPH],
    ContainerKind.MP4: [BlockKind.MP4],
    ContainerKind.ASF: [BlockKind.ASF],
    ContainerKind.MONKEYS_AUDIO: [BlockKind.APE, BlockKind.ID3V1],
    ContainerKind.WAVPACK: [BlockKind.APE, BlockKind.ID3V1],
    ContainerKind.MUSEPACK: [BlockKind.APE, BlockKind.ID3V1],
}


class PriorityPolicy:
    """
    Per-container read priority and primary writable block.

    ``orders`` overrides the default ordering for some containers; kinds a
    container cannot carry are ignored. ``primaries`` overrides the block
    that unqualified writes go to (default: first in the order).
    """

    def __init__(self, orders: Optional[Mapping[ContainerKind, Sequence[BlockKind]]] = None,
                 primaries: Optional[Mapping[ContainerKind, BlockKind]] = None):
        self.orders = {k: list(v) for k, v in (orders or {}).items()}
        self.primaries = dict(primaries or {})

    def order(self, container: ContainerKind) -> List[BlockKind]:
        supported = CONTAINER_BLOCKS[container]
        custom = self.orders.get(container)
        if custom is None:
            return list(supported)
        ordered = [k for k in custom if k in supported]
        # Kinds the override forgot still rank, after the listed ones
        ordered.extend(k for k in supported if k not in ordered)
        return ordered

    def primary(self, container: ContainerKind) -> BlockKind:
        kind = self.primaries.get(container)
        if kind is not None and kind in CONTAINER_BLOCKS[container]:
            return kind
        return self.order(container)[0]

    def supports(self, container: ContainerKind, kind: BlockKind) -> bool:
        return kind in CONTAINER_BLOCKS[container]


DEFAULT_POLICY = PriorityPolicy()


class PropertyUnifier:
    """
    Resolves canonical keys across blocks by priority.

    ``entries`` is every raw entry; ``order`` ranks their sources. Entries
    from sources outside ``order`` rank last, in the order given.
    """

    def __init__(self, entries: Iterable[PropertyEntry], order: Sequence[BlockKind]):
        rank = {kind: i for i, kind in enumerate(order)}
        indexed = list(enumerate(entries))
        # Stable: native order within a block is preserved
        indexed.sort(key=lambda item: (rank.get(item[1].source, len(rank)), item[0]))
        self.entries = [entry for _, entry in indexed]

    def get(self, key: str) -> Optional[str]:
        """First non-empty value of the highest-priority source that defines ``key``."""
        key = normalize_key(key)
        for entry in self.entries:
            if entry.key.upper() == key and entry.value:
                return entry.value
        return None

    def get_all(self, key: str) -> List[PropertyEntry]:
        """Every raw entry for ``key`` across all sources, in priority order."""
        key = normalize_key(key)
        return [e for e in self.entries if e.key.upper() == key]

    def all_keys(self) -> List[str]:
        """De-duplicated canonical keys; native entries are left out."""
        seen = []
        for entry in self.entries:
            if not entry.native and entry.key not in seen:
                seen.append(entry.key)
        return seen

    def all_raw(self) -> List[PropertyEntry]:
        return list(self.entries)

    def canonical_map(self) -> Dict[str, str]:
        """Key -> winning value; multi-valued keys keep only their first value."""
        out = {}
        for entry in self.entries:
            if not entry.native and entry.value and entry.key not in out:
                out[entry.key] = entry.value
        return out

    def values(self, key: str) -> List[str]:
        """All values of ``key`` from the single highest-priority source defining it."""
        matches = self.get_all(key)
        if not matches:
            return []
        source = matches[0].source
        return [e.value for e in matches if e.source is source]
