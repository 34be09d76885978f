"""
Tag block codecs, one per BlockKind.
"""

from typing import Dict, Type

from ..model import BlockKind
from .base import TagBlock
from .ape import APEBlock
from .asf import ASFBlock
from .id3v1 import ID3v1Block
from .id3v2 import ID3v2Block
from .mp4 import MP4Block
from .xiph import XiphBlock

CODECS: Dict[BlockKind, Type[TagBlock]] = {
    BlockKind.ID3V1: ID3v1Block,
    BlockKind.ID3V2: ID3v2Block,
    BlockKind.XIPH: XiphBlock,
    BlockKind.APE: APEBlock,
    BlockKind.MP4: MP4Block,
    BlockKind.ASF: ASFBlock,
}

_missing = set(BlockKind) - set(CODECS)
if _missing:
    raise ImportError(f"No codec registered for {sorted(k.value for k in _missing)}")

__all__ = [
    'CODECS', 'TagBlock', 'APEBlock', 'ASFBlock', 'ID3v1Block',
    'ID3v2Block', 'MP4Block', 'XiphBlock',
]
