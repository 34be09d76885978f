"""
ID3v2 tag block backed by mutagen.id3.

Used standalone at the head of MPEG streams and as the ID3 chunk of WAV and
AIFF files (where the host file object owns the chunk-aware tag class).
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Union

import mutagen
import mutagen.id3 as id3

from .. import keys
from ..errors import CorruptTag
from ..model import BlockKind, Picture, PropertyEntry, RatingInfo
from ..pictures import picture_type_code, picture_type_name, sniff_mime
from ..utils import Config
from .base import TagBlock

logger = logging.getLogger(__name__)

# Frames surfaced through pictures and ratings instead of properties
_NON_PROPERTY_FRAMES = {'APIC', 'POPM', 'PCNT'}


def _person_key(frame_id: str, role: str) -> str:
    """Canonical key for one (role, name) pair of a TIPL or TMCL frame."""
    role = role.strip().upper()
    if frame_id == 'TMCL':
        return f"{keys.PERFORMER_PREFIX}{role}"
    return keys.ID3_TIPL_ROLES.get(role, f"TIPL:{role}")


def _described_key(base: str, desc: str) -> str:
    return f"{base}:{desc.upper()}" if desc else base


class ID3v2Block(TagBlock):
    """Text, comment, URL, involvement and identifier frames plus APIC, POPM and PCNT."""

    kind = BlockKind.ID3V2
    supports_pictures = True
    supports_rating = True

    def __init__(self, tags: id3.ID3, embedded: bool = False, on_disk: bool = True):
        super().__init__(on_disk=on_disk)
        self.tags = tags
        # True when the tag is a RIFF/IFF chunk saved through the host's tag class
        self.embedded = embedded

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ID3v2Block':
        """Parse the leading ID3v2 tag of a file without folding in ID3v1."""
        try:
            tags = id3.ID3(path, load_v1=False)
        except mutagen.MutagenError as e:
            raise CorruptTag(f"Unreadable ID3v2 tag in {path}: {e}") from e
        except Exception as e:
            raise CorruptTag(f"Failed to parse ID3v2 tag in {path}: {e}") from e
        return cls(tags)

    @classmethod
    def create(cls) -> 'ID3v2Block':
        return cls(id3.ID3(), on_disk=False)

    @property
    def version(self) -> int:
        """Major version the tag will be written as."""
        if Config.ID3V2_VERSION:
            return Config.ID3V2_VERSION
        return 3 if self.tags.version[1] == 3 else 4

    # ---------- Properties ----------

    def _frame_entries(self, frame: Any) -> List[PropertyEntry]:
        fid = frame.FrameID
        if fid in _NON_PROPERTY_FRAMES:
            return []
        if fid == 'TCON':
            return [self._entry('GENRE', g) for g in frame.genres]
        if fid in keys.ID3_TEXT_FRAMES:
            return [self._entry(keys.ID3_TEXT_FRAMES[fid], t) for t in frame.text]
        if fid == 'TXXX':
            if not frame.desc:
                return [self._entry(frame.HashKey, t, native=True) for t in frame.text]
            key = keys.ID3_TXXX_DESCRIPTIONS.get(frame.desc, frame.desc.upper())
            return [self._entry(key, t) for t in frame.text]
        if fid == 'COMM':
            key = _described_key('COMMENT', frame.desc)
            return [self._entry(key, t) for t in frame.text]
        if fid == 'USLT':
            return [self._entry(_described_key('LYRICS', frame.desc), frame.text)]
        if fid in keys.ID3_URL_FRAMES:
            return [self._entry(keys.ID3_URL_FRAMES[fid], frame.url)]
        if fid == 'WXXX':
            return [self._entry(frame.desc.upper() or 'URL', frame.url)]
        if fid == 'UFID' and frame.owner == keys.MUSICBRAINZ_UFID_OWNER:
            return [self._entry(keys.MUSICBRAINZ_TRACKID, frame.data.decode('ascii', errors='replace'))]
        if fid in ('TIPL', 'TMCL'):
            out = []
            for role, name in frame.people:
                key = _person_key(fid, role)
                out.append(self._entry(key, name, native=key.startswith('TIPL:')))
            return out
        if hasattr(frame, 'text') and fid.startswith('T'):
            return [self._entry(frame.HashKey, t, native=True) for t in frame.text]
        # Anything else is kept opaque and written back untouched
        return [self._entry(frame.HashKey, frame.pprint().split('=', 1)[-1], native=True)]

    def entries(self) -> List[PropertyEntry]:
        out = []
        for frame in self.tags.values():
            out.extend(self._frame_entries(frame))
        for raw in getattr(self.tags, 'unknown_frames', []):
            frame_id = raw[:4].decode('latin-1', errors='replace')
            out.append(self._entry(frame_id, f"<opaque {len(raw)} bytes>", native=True))
        return out

    def _replace_described(self, frame_id: str, desc_key: str, build) -> None:
        """Replace COMM/USLT/TXXX frames whose description matches, keeping the stored spelling."""
        old = [f for f in self.tags.getall(frame_id) if f.desc.upper() == desc_key.upper()]
        desc = old[0].desc if old else desc_key
        lang = getattr(old[0], 'lang', 'eng') if old else 'eng'
        for frame in old:
            del self.tags[frame.HashKey]
        self.tags.add(build(desc, lang))

    def _set_people(self, frame_id: str, key: str, role: str, names: List[str]) -> None:
        people = []
        for frame in self.tags.getall(frame_id):
            people.extend(p for p in frame.people if _person_key(frame_id, p[0]) != key)
        people.extend([role, name] for name in names)
        frame_cls = getattr(id3, frame_id)
        self.tags.setall(frame_id, [frame_cls(encoding=3, people=people)])

    def _set(self, key: str, values: List[str]) -> None:
        tags = self.tags
        if key in keys.ID3_TEXT_KEYS:
            fid = keys.ID3_TEXT_KEYS[key]
            tags.setall(fid, [getattr(id3, fid)(encoding=3, text=values)])
        elif key == 'COMMENT' or key.startswith('COMMENT:'):
            self._replace_described(
                'COMM', key[len('COMMENT:'):],
                lambda desc, lang: id3.COMM(encoding=3, lang=lang, desc=desc, text=values))
        elif key == 'LYRICS' or key.startswith('LYRICS:'):
            self._replace_described(
                'USLT', key[len('LYRICS:'):],
                lambda desc, lang: id3.USLT(encoding=3, lang=lang, desc=desc, text='\n'.join(values)))
        elif key in keys.ID3_URL_KEYS:
            fid = keys.ID3_URL_KEYS[key]
            tags.setall(fid, [getattr(id3, fid)(url=values[0])])
        elif key == keys.MUSICBRAINZ_TRACKID:
            for frame in tags.getall('UFID'):
                if frame.owner == keys.MUSICBRAINZ_UFID_OWNER:
                    del tags[frame.HashKey]
            tags.add(id3.UFID(owner=keys.MUSICBRAINZ_UFID_OWNER, data=values[0].encode('ascii', errors='replace')))
        elif key in keys.ID3_TIPL_KEYS:
            self._set_people('TIPL', key, keys.ID3_TIPL_KEYS[key], values)
        elif keys.performer_role(key):
            self._set_people('TMCL', key, keys.performer_role(key).lower(), values)
        else:
            self._replace_described(
                'TXXX', keys.ID3_TXXX_KEYS.get(key, key),
                lambda desc, lang: id3.TXXX(encoding=3, desc=desc, text=values))

    def _remove(self, key: str) -> bool:
        found = False
        for frame in list(self.tags.values()):
            fid = frame.FrameID
            if fid in ('TIPL', 'TMCL'):
                people = [p for p in frame.people if _person_key(fid, p[0]) != key]
                if len(people) == len(frame.people):
                    continue
                found = True
                if people:
                    frame.people = people
                else:
                    del self.tags[frame.HashKey]
            elif any(e.key.upper() == key for e in self._frame_entries(frame)):
                del self.tags[frame.HashKey]
                found = True
        return found

    def _clear(self) -> None:
        self.tags.clear()
        self.tags.unknown_frames = []

    # ---------- Pictures ----------

    def _read_pictures(self) -> List[Picture]:
        out = []
        for frame in self.tags.getall('APIC'):
            out.append(Picture(
                data=frame.data,
                mime_type=frame.mime or sniff_mime(frame.data),
                description=frame.desc,
                picture_type=picture_type_name(frame.type),
                params={'encoding': int(frame.encoding)},
            ))
        return out

    def _set_pictures(self, pictures: List[Picture]) -> None:
        self.tags.delall('APIC')
        for pic in pictures:
            frame = id3.APIC(
                encoding=pic.params.get('encoding', 3),
                mime=pic.mime_type or sniff_mime(pic.data) or 'image/jpeg',
                type=picture_type_code(pic.picture_type),
                desc=pic.description,
                data=pic.data,
            )
            # ID3.add replaces on a HashKey clash; the salt is not written to disk
            while frame.HashKey in self.tags:
                frame.salt += ' '
            self.tags.add(frame)

    # ---------- Rating ----------

    def _popm(self) -> Optional[id3.POPM]:
        frames = self.tags.getall('POPM')
        for frame in frames:
            if frame.email == Config.POPM_EMAIL:
                return frame
        return frames[0] if frames else None

    def get_rating(self) -> RatingInfo:
        popm = self._popm()
        if popm is not None:
            return RatingInfo(rating=popm.rating, play_count=getattr(popm, 'count', 0) or 0)
        pcnt = self.tags.getall('PCNT')
        return RatingInfo(rating=None, play_count=pcnt[0].count if pcnt else 0)

    def _set_rating(self, rating: Optional[int]) -> None:
        count = self.get_rating().play_count
        if rating is None:
            # Unset means no POPM at all; a surviving counter moves to PCNT
            self.tags.delall('POPM')
            if count:
                self.tags.setall('PCNT', [id3.PCNT(count=count)])
            return
        popm = self._popm()
        if popm is None:
            self.tags.add(id3.POPM(email=Config.POPM_EMAIL, rating=rating, count=count))
            self.tags.delall('PCNT')
        else:
            popm.rating = rating

    def _set_play_count(self, count: int) -> None:
        popm = self._popm()
        if popm is not None:
            popm.count = count
            self.tags.delall('PCNT')
        elif count:
            self.tags.setall('PCNT', [id3.PCNT(count=count)])
        else:
            self.tags.delall('PCNT')

    # ---------- Serialization ----------

    def commit(self, target: Union[str, Path]) -> None:
        if self.embedded:
            self.tags.save(target, v2_version=self.version, v23_sep=Config.ID3V23_SEPARATOR)
        else:
            # The engine detaches and re-appends ID3v1 itself
            self.tags.save(target, v1=id3.ID3v1SaveOptions.REMOVE,
                           v2_version=self.version, v23_sep=Config.ID3V23_SEPARATOR)

    def strip(self, target: Union[str, Path]) -> None:
        if self.embedded:
            self.tags.delete(target)
        else:
            id3.delete(target, delete_v1=False, delete_v2=True)
