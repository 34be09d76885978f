"""
ASF/WMA attribute block backed by mutagen.asf.
"""

import logging
from pathlib import Path
from typing import Any, List, Union

import mutagen.asf as asf

from .. import keys
from ..errors import CorruptTag
from ..model import BlockKind, Picture, PropertyEntry
from ..pictures import decode_wm_picture, encode_wm_picture
from .base import TagBlock

logger = logging.getLogger(__name__)


class ASFBlock(TagBlock):
    """Content description and WM/* attributes; pictures are WM/Picture byte arrays."""

    kind = BlockKind.ASF
    supports_pictures = True

    def __init__(self, host: asf.ASF, on_disk: bool = True):
        super().__init__(on_disk=on_disk)
        self.host = host
        if host.tags is None:
            host.add_tags()

    @property
    def tags(self) -> asf.ASFTags:
        return self.host.tags

    def _attribute_entry(self, name: str, attr: Any) -> PropertyEntry:
        if isinstance(attr, asf.ASFByteArrayAttribute):
            return self._entry(name, f"<binary {len(attr.value)} bytes>", native=True)
        canon = keys.ASF_ATTRIBUTES.get(name)
        if canon is None:
            return self._entry(name, attr.value, native=not name.isupper())
        return self._entry(canon, attr.value)

    def entries(self) -> List[PropertyEntry]:
        return [self._attribute_entry(name, attr) for name, attr in self.tags
                if name != keys.ASF_PICTURE_ATTRIBUTE]

    def _names_for(self, key: str) -> List[str]:
        names = []
        for name, attr in self.tags:
            if name != keys.ASF_PICTURE_ATTRIBUTE and name not in names \
                    and self._attribute_entry(name, attr).key.upper() == key:
                names.append(name)
        return names

    def _set(self, key: str, values: List[str]) -> None:
        existing = self._names_for(key)
        name = existing[0] if existing else keys.ASF_KEYS.get(key, key)
        for old in existing[1:]:
            del self.tags[old]
        self.tags[name] = [asf.ASFUnicodeAttribute(v) for v in values]

    def _remove(self, key: str) -> bool:
        names = self._names_for(key)
        for name in names:
            del self.tags[name]
        return bool(names)

    def _clear(self) -> None:
        self.tags.clear()

    # ---------- Pictures ----------

    def _read_pictures(self) -> List[Picture]:
        out = []
        for name, attr in self.tags:
            if name != keys.ASF_PICTURE_ATTRIBUTE:
                continue
            try:
                out.append(decode_wm_picture(attr.value))
            except CorruptTag as e:
                logger.debug(f"Skipping malformed WM/Picture: {e}")
        return out

    def _set_pictures(self, pictures: List[Picture]) -> None:
        if keys.ASF_PICTURE_ATTRIBUTE in self.tags:
            del self.tags[keys.ASF_PICTURE_ATTRIBUTE]
        if pictures:
            self.tags[keys.ASF_PICTURE_ATTRIBUTE] = [
                asf.ASFByteArrayAttribute(encode_wm_picture(p)) for p in pictures]

    # ---------- Serialization ----------

    def commit(self, target: Union[str, Path]) -> None:
        self.host.save(target)

    def strip(self, target: Union[str, Path]) -> None:
        # ASF has no separate tag region; an empty attribute set is written instead
        self.tags.clear()
        self.host.save(target)
