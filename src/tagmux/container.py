"""
AudioContainer - one open audio file and every tag block found in it.

Reads go through the PropertyUnifier; mutations are buffered in the blocks'
in-memory models until save() hands them to the SaveEngine.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence, Union

import mutagen
import mutagen.aiff as aiff
import mutagen.asf as asf
import mutagen.flac as flac
import mutagen.monkeysaudio as monkeysaudio
import mutagen.mp3 as mp3
import mutagen.mp4 as mp4
import mutagen.musepack as musepack
import mutagen.oggflac as oggflac
import mutagen.oggopus as oggopus
import mutagen.oggspeex as oggspeex
import mutagen.oggvorbis as oggvorbis
import mutagen.wave as wave
import mutagen.wavpack as wavpack

from .detect import Detection, detect
from .errors import CorruptTag, TagError, UnsupportedOperation
from .formats import CODECS, ID3v1Block, ID3v2Block, APEBlock, TagBlock
from .keys import PERFORMER_PREFIX, normalize_key
from .model import AudioStreamInfo, BlockKind, ContainerKind, Picture, PropertyEntry
from .pictures import PictureStore
from .rating import RatingMapper
from .save import SaveEngine
from .unify import DEFAULT_POLICY, PriorityPolicy, PropertyUnifier
from .utils import safe_unicode_path, truncate_text

logger = logging.getLogger(__name__)

# Containers whose tags are owned by a mutagen FileType
HOST_TYPES = {
    ContainerKind.FLAC: flac.FLAC,
    ContainerKind.OGG_VORBIS: oggvorbis.OggVorbis,
    ContainerKind.OGG_OPUS: oggopus.OggOpus,
    ContainerKind.OGG_SPEEX: oggspeex.OggSpeex,
    ContainerKind.OGG_FLAC: oggflac.OggFLAC,
    ContainerKind.MP4: mp4.MP4,
    ContainerKind.ASF: asf.ASF,
    ContainerKind.WAV: wave.WAVE,
    ContainerKind.AIFF: aiff.AIFF,
}

# Stream header readers for containers whose tags live outside the audio
STREAM_INFO_READERS = {
    ContainerKind.MPEG: lambda fileobj, offset: mp3.MPEGInfo(fileobj, offset),
    ContainerKind.MONKEYS_AUDIO: lambda fileobj, offset: monkeysaudio.MonkeysAudioInfo(fileobj),
    ContainerKind.WAVPACK: lambda fileobj, offset: wavpack.WavPackInfo(fileobj),
    ContainerKind.MUSEPACK: lambda fileobj, offset: musepack.MusepackInfo(fileobj),
}

STATE_OPENED = 'opened'
STATE_DIRTY = 'dirty'
STATE_CLOSED = 'closed'

PathLike = Union[str, bytes, Path]
ValueType = Union[None, str, int, Sequence[Any]]


def _text_property(key: str, doc: str) -> property:
    """Read/write shortcut for one canonical key."""
    def getter(self) -> Optional[str]:
        return self.get(key)

    def setter(self, value: Optional[str]) -> None:
        self.set(key, value)

    return property(getter, setter, doc=doc)


def _number_property(key: str, doc: str) -> property:
    """Integer shortcut; reads the leading number of values like '3/12' or '2024-05-01'."""
    def getter(self) -> Optional[int]:
        value = self.get(key)
        if value is None:
            return None
        digits = ''
        for ch in value.strip():
            if not ch.isdigit():
                break
            digits += ch
        return int(digits) if digits else None

    def setter(self, value: Optional[int]) -> None:
        self.set(key, None if value is None else str(int(value)))

    return property(getter, setter, doc=doc)


class AudioContainer:
    """
    Unified access to the tags of one audio file.

    Mutating methods return True on success and False (after logging) when
    a block refuses the change; nothing reaches the disk before save().
    """

    def __init__(self, path: PathLike, policy: Optional[PriorityPolicy] = None):
        """Open ``path``; raises FileNotFound or UnsupportedFormat."""
        self.path = Path(safe_unicode_path(path))
        self.policy = policy or DEFAULT_POLICY
        self._closed = False
        self._pictures = PictureStore(self)
        self._ratings = RatingMapper(self)
        self._load()

    @classmethod
    def open(cls, path: PathLike, policy: Optional[PriorityPolicy] = None) -> 'AudioContainer':
        return cls(path, policy=policy)

    # ---------- Loading ----------

    def _load(self) -> None:
        """(Re)read the file from disk, dropping any in-memory changes."""
        self.detection: Detection = detect(self.path)
        self.container_kind: ContainerKind = self.detection.container
        self.blocks: Dict[BlockKind, TagBlock] = {}
        self.corrupt_blocks: List[BlockKind] = []
        self.host = None
        self.info = AudioStreamInfo()

        host_type = HOST_TYPES.get(self.container_kind)
        if host_type is not None:
            try:
                self.host = host_type(self.path)
                self.info = AudioStreamInfo.from_mutagen(self.host.info)
            except mutagen.MutagenError as e:
                logger.warning(f"Cannot parse {self.container_kind} structure of {self.path.name}: {e}")
            except Exception as e:
                logger.warning(f"Failed to load {self.path.name} as {self.container_kind}: {e}")
        else:
            self.info = self._read_stream_info()

        for kind in self.policy.order(self.container_kind):
            if kind not in self.detection.blocks:
                continue
            try:
                self.blocks[kind] = self._load_block(kind)
            except CorruptTag as e:
                # Isolated: the block reads as absent and is left untouched on save
                logger.warning(f"Ignoring corrupt {kind} tag in {self.path.name}: {e}")
                self.corrupt_blocks.append(kind)

        logger.debug(f"Opened {self.path.name}: {self.container_kind}, "
                     f"blocks={[k.value for k in self.blocks]}, corrupt={[k.value for k in self.corrupt_blocks]}")

    def _read_stream_info(self) -> AudioStreamInfo:
        reader = STREAM_INFO_READERS.get(self.container_kind)
        if reader is None:
            return AudioStreamInfo()
        offset = self.detection.id3v2_size
        try:
            with open(self.path, 'rb') as f:
                f.seek(offset)
                return AudioStreamInfo.from_mutagen(reader(f, offset))
        except mutagen.MutagenError as e:
            logger.warning(f"No {self.container_kind} stream header in {self.path.name}: {e}")
        except Exception as e:
            logger.warning(f"Failed to read stream properties of {self.path.name}: {e}")
        return AudioStreamInfo()

    def _load_block(self, kind: BlockKind) -> TagBlock:
        if kind is BlockKind.ID3V1:
            return ID3v1Block.load(self.path, self.detection.id3v1_offset)
        if kind is BlockKind.APE:
            return APEBlock.load(self.path)
        if kind is BlockKind.ID3V2 and HOST_TYPES.get(self.container_kind) is None:
            return ID3v2Block.load(self.path)
        if self.host is None:
            raise CorruptTag(f"{self.container_kind} structure could not be parsed")
        if kind is BlockKind.ID3V2:
            if self.host.tags is None:
                raise CorruptTag("ID3 chunk present but unreadable")
            return ID3v2Block(self.host.tags, embedded=True)
        return CODECS[kind](self.host)

    def _new_block(self, kind: BlockKind) -> TagBlock:
        if kind is BlockKind.ID3V1:
            return ID3v1Block()
        if kind is BlockKind.APE:
            return APEBlock.create()
        if kind is BlockKind.ID3V2 and HOST_TYPES.get(self.container_kind) is None:
            return ID3v2Block.create()
        if self.host is None:
            raise UnsupportedOperation(f"Cannot add tags: {self.container_kind} structure of "
                                       f"{self.path.name} could not be parsed")
        if kind is BlockKind.ID3V2:
            if self.host.tags is None:
                self.host.add_tags()
            return ID3v2Block(self.host.tags, embedded=True, on_disk=False)
        return CODECS[kind](self.host, on_disk=False)

    def block(self, kind: Union[BlockKind, str], create: bool = False) -> Optional[TagBlock]:
        """
        Return the block of ``kind``, optionally creating an empty one.

        Raises:
            UnsupportedOperation: the container cannot carry that kind, or
                the block exists but could not be parsed
        """
        kind = BlockKind.parse(kind)
        existing = self.blocks.get(kind)
        if existing is not None or not create:
            return existing
        if not self.policy.supports(self.container_kind, kind):
            raise UnsupportedOperation(f"{self.container_kind} files cannot carry {kind} tags")
        if kind in self.corrupt_blocks:
            raise UnsupportedOperation(f"Refusing to overwrite the unreadable {kind} tag of {self.path.name}")
        new = self._new_block(kind)
        self.blocks[kind] = new
        return new

    # ---------- State ----------

    @property
    def is_dirty(self) -> bool:
        return any(b.dirty or b.removed for b in self.blocks.values())

    @property
    def state(self) -> str:
        if self._closed:
            return STATE_CLOSED
        return STATE_DIRTY if self.is_dirty else STATE_OPENED

    @property
    def primary_block_kind(self) -> BlockKind:
        return self.policy.primary(self.container_kind)

    # ---------- Properties ----------

    def _unifier(self) -> PropertyUnifier:
        entries: List[PropertyEntry] = []
        for block in self.blocks.values():
            entries.extend(block.entries())
        return PropertyUnifier(entries, self.policy.order(self.container_kind))

    def get(self, key: str) -> Optional[str]:
        """Value of ``key`` from the highest-priority block defining it, else None."""
        return self._unifier().get(key)

    def get_values(self, key: str) -> List[str]:
        """Every value of ``key`` in the highest-priority block defining it."""
        return self._unifier().values(key)

    def get_all(self, key: str) -> List[PropertyEntry]:
        """All raw entries for ``key`` across blocks, with their sources."""
        return self._unifier().get_all(key)

    def all_keys(self) -> List[str]:
        return self._unifier().all_keys()

    def all_raw(self) -> List[PropertyEntry]:
        return self._unifier().all_raw()

    def all_properties(self) -> Dict[str, str]:
        """Canonical key -> winning value."""
        return self._unifier().canonical_map()

    def set(self, key: str, value: ValueType, source: Union[BlockKind, str, None] = None) -> bool:
        """
        Write ``value`` to the primary block (or ``source``), creating the block if needed.

        ``value`` may be a string, a number or a list of them. None removes
        the key from that one block only; see purge_property() to remove it
        everywhere.
        """
        key = normalize_key(key)
        if not key:
            logger.warning("Ignoring set() with an empty key")
            return False
        kind = BlockKind.parse(source) if source is not None else self.primary_block_kind
        if value is None:
            return self.remove_property(key, kind)
        if isinstance(value, (list, tuple)):
            values = [str(v) for v in value]
        else:
            values = [str(value)]
        if not values:
            return self.remove_property(key, kind)
        try:
            self.block(kind, create=True).set(key, values)
        except TagError as e:
            logger.warning(f"Cannot set {key} in {kind} tag of {self.path.name}: {e}")
            return False
        return True

    def remove_property(self, key: str, source: Union[BlockKind, str]) -> bool:
        """Remove ``key`` from one block. Removing an absent key succeeds."""
        key = normalize_key(key)
        kind = BlockKind.parse(source)
        block = self.blocks.get(kind)
        if block is None:
            return True
        try:
            block.remove(key)
        except TagError as e:
            logger.warning(f"Cannot remove {key} from {kind} tag of {self.path.name}: {e}")
            return False
        return True

    def purge_property(self, key: str) -> int:
        """Remove ``key`` from every block; returns how many blocks held it."""
        key = normalize_key(key)
        count = 0
        for kind, block in self.blocks.items():
            try:
                if block.remove(key):
                    count += 1
            except TagError as e:
                logger.warning(f"Cannot remove {key} from {kind} tag of {self.path.name}: {e}")
        return count

    def remove_all_tags(self) -> bool:
        """Discard every tag block; the file is stripped on the next save."""
        for block in self.blocks.values():
            block.clear()
            block.removed = True
        if self.corrupt_blocks:
            logger.warning(f"Unreadable {[k.value for k in self.corrupt_blocks]} tag(s) "
                           f"of {self.path.name} are left in place")
        return True

    # ---------- Convenience fields ----------

    title = _text_property('TITLE', "Track title.")
    artist = _text_property('ARTIST', "Track artist.")
    album = _text_property('ALBUM', "Album title.")
    album_artist = _text_property('ALBUMARTIST', "Album artist.")
    comment = _text_property('COMMENT', "Comment.")
    genre = _text_property('GENRE', "Genre name.")
    date = _text_property('DATE', "Recording date as stored.")
    original_date = _text_property('ORIGINALDATE', "Original release date.")
    composer = _text_property('COMPOSER', "Composer.")
    lyricist = _text_property('LYRICIST', "Lyricist.")
    conductor = _text_property('CONDUCTOR', "Conductor.")
    remixer = _text_property('REMIXER', "Remixer.")
    lyrics = _text_property('LYRICS', "Unsynchronised lyrics.")
    isrc = _text_property('ISRC', "International Standard Recording Code.")
    label = _text_property('LABEL', "Record label.")
    title_sort = _text_property('TITLESORT', "Sort name for the title.")
    artist_sort = _text_property('ARTISTSORT', "Sort name for the artist.")
    album_sort = _text_property('ALBUMSORT', "Sort name for the album.")
    album_artist_sort = _text_property('ALBUMARTISTSORT', "Sort name for the album artist.")
    musicbrainz_track_id = _text_property('MUSICBRAINZ_TRACKID', "MusicBrainz recording id.")
    musicbrainz_album_id = _text_property('MUSICBRAINZ_ALBUMID', "MusicBrainz release id.")
    musicbrainz_artist_id = _text_property('MUSICBRAINZ_ARTISTID', "MusicBrainz artist id.")
    musicbrainz_album_artist_id = _text_property('MUSICBRAINZ_ALBUMARTISTID', "MusicBrainz album artist id.")
    musicbrainz_release_group_id = _text_property('MUSICBRAINZ_RELEASEGROUPID', "MusicBrainz release group id.")
    musicbrainz_release_track_id = _text_property('MUSICBRAINZ_RELEASETRACKID', "MusicBrainz track id.")
    musicbrainz_work_id = _text_property('MUSICBRAINZ_WORKID', "MusicBrainz work id.")
    acoustid_id = _text_property('ACOUSTID_ID', "AcoustID.")
    acoustid_fingerprint = _text_property('ACOUSTID_FINGERPRINT', "Chromaprint fingerprint.")
    musicip_puid = _text_property('MUSICIP_PUID', "MusicIP PUID.")
    subtitle = _text_property('SUBTITLE', "Subtitle.")
    composer_sort = _text_property('COMPOSERSORT', "Sort name for the composer.")
    asin = _text_property('ASIN', "Amazon ASIN.")
    copyright = _text_property('COPYRIGHT', "Copyright message.")
    encoded_by = _text_property('ENCODEDBY', "Person or organisation that encoded the file.")
    mood = _text_property('MOOD', "Mood.")
    media = _text_property('MEDIA', "Release medium.")
    catalog_number = _text_property('CATALOGNUMBER', "Label catalogue number.")
    barcode = _text_property('BARCODE', "Release barcode.")
    release_country = _text_property('RELEASECOUNTRY', "Country of release.")
    release_status = _text_property('RELEASESTATUS', "Release status.")
    release_type = _text_property('RELEASETYPE', "Release type.")
    year = _number_property('DATE', "Year taken from the DATE value.")
    track = _number_property('TRACKNUMBER', "Track number.")
    disc_number = _number_property('DISCNUMBER', "Disc number.")
    bpm = _number_property('BPM', "Beats per minute.")

    def performer(self, role: str) -> Optional[str]:
        """Performer credited for ``role`` (an instrument or vocal part)."""
        return self.get(f"{PERFORMER_PREFIX}{role.upper()}")

    def set_performer(self, name: Optional[str], role: str) -> bool:
        return self.set(f"{PERFORMER_PREFIX}{role.upper()}", name)

    def all_performers(self) -> Dict[str, List[str]]:
        """Role -> performer names, from the highest-priority block naming each role."""
        unifier = self._unifier()
        out: Dict[str, List[str]] = {}
        for key in unifier.all_keys():
            if key.startswith(PERFORMER_PREFIX):
                out[key[len(PERFORMER_PREFIX):]] = unifier.values(key)
        return out

    # ---------- Pictures ----------

    def picture_blocks(self) -> List[TagBlock]:
        """Picture-capable blocks present, designated block first."""
        designated = self._designated_picture_kind()
        kinds = [designated] + [k for k in self.policy.order(self.container_kind) if k is not designated]
        return [self.blocks[k] for k in kinds if k in self.blocks and self.blocks[k].supports_pictures]

    def _designated_picture_kind(self) -> BlockKind:
        primary = self.primary_block_kind
        if CODECS[primary].supports_pictures:
            return primary
        for kind in self.policy.order(self.container_kind):
            if CODECS[kind].supports_pictures:
                return kind
        raise UnsupportedOperation(f"{self.container_kind} files cannot hold pictures")

    def designated_picture_block(self) -> TagBlock:
        """Block that receives new pictures, created if absent."""
        return self.block(self._designated_picture_kind(), create=True)

    def list_pictures(self) -> List[Picture]:
        return self._pictures.list()

    @property
    def picture_count(self) -> int:
        return self._pictures.count()

    def add_picture(self, picture: Picture) -> bool:
        try:
            self._pictures.add(picture)
        except TagError as e:
            logger.warning(f"Cannot add picture to {self.path.name}: {e}")
            return False
        return True

    def remove_picture_at(self, index: int) -> bool:
        return self._pictures.remove_at(index)

    def replace_picture_at(self, index: int, picture: Picture) -> bool:
        return self._pictures.replace_at(index, picture)

    def remove_pictures_of_type(self, picture_type: str) -> int:
        return self._pictures.remove_all_of_type(picture_type)

    def remove_all_pictures(self) -> bool:
        self._pictures.remove_all()
        return True

    @property
    def artwork(self) -> Optional[Picture]:
        """First picture in list order."""
        return self._pictures.artwork

    def set_artwork(self, picture: Optional[Picture]) -> bool:
        """Replace every picture with ``picture``; None removes them all."""
        if picture is None:
            return self.remove_all_pictures()
        return self.replace_pictures([picture])

    def replace_pictures(self, pictures: List[Picture]) -> bool:
        try:
            self._pictures.replace_all(pictures)
        except TagError as e:
            logger.warning(f"Cannot replace pictures of {self.path.name}: {e}")
            return False
        return True

    # ---------- Rating ----------

    @property
    def supports_rating(self) -> bool:
        return any(CODECS[k].supports_rating for k in self.policy.order(self.container_kind))

    def rating_block(self, create: bool = False) -> Optional[TagBlock]:
        for kind in self.policy.order(self.container_kind):
            if CODECS[kind].supports_rating:
                return self.block(kind, create=create)
        return None

    def get_rating(self) -> Optional[int]:
        """Rating on the 0..255 scale, None when unset or unsupported."""
        return self._ratings.get_rating()

    def set_rating(self, rating: Optional[int]) -> bool:
        return self._ratings.set_rating(rating)

    def get_stars(self) -> Optional[int]:
        return self._ratings.get_stars()

    def set_stars(self, stars: Optional[int]) -> bool:
        return self._ratings.set_stars(stars)

    def get_play_count(self) -> int:
        return self._ratings.get_play_count()

    def set_play_count(self, count: int) -> bool:
        return self._ratings.set_play_count(count)

    # ---------- Saving ----------

    def save(self) -> bool:
        """
        Commit every pending change atomically.

        Returns False (and keeps the changes pending) if anything failed;
        the file on disk is then unchanged.
        """
        if not self.is_dirty:
            return True
        try:
            SaveEngine(self).save()
        except TagError as e:
            logger.error(f"Failed to save {self.path}: {e}")
            return False
        try:
            self._load()
        except TagError as e:
            logger.error(f"Saved {self.path} but could not read it back: {e}")
            return False
        return True

    # ---------- Lifecycle ----------

    def close(self) -> None:
        """Release the parsed file; pending changes are discarded."""
        if self.is_dirty:
            logger.warning(f"Closing {self.path.name} with unsaved changes")
        self.host = None
        self.blocks = {}
        self._closed = True

    def __enter__(self) -> 'AudioContainer':
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @staticmethod
    @contextmanager
    def managed(path: PathLike, policy: Optional[PriorityPolicy] = None) -> Generator['AudioContainer', None, None]:
        """Open ``path`` for the duration of a with-block."""
        container = None
        try:
            container = AudioContainer(path, policy=policy)
            yield container
        except TagError as e:
            logger.error(f"Failed to process {path}: {e}")
            raise
        finally:
            if container is not None:
                container.close()

    # ---------- Display ----------

    def __repr__(self) -> str:
        return f"<AudioContainer {self.path.name} {self.container_kind} {self.state}>"

    def __str__(self) -> str:
        lines = [f"=== {self.path.name} ==="]
        lines.append(f"{'container':15}: {self.container_kind} ({self.info.formatted_duration}, "
                     f"{self.info.bitrate} kbps, {self.info.sample_rate} Hz, {self.info.channels} ch)")
        raw = self.all_raw()
        if not raw and not self.picture_count:
            lines.append("No metadata found.")
            return "\n".join(lines)
        for entry in raw:
            lines.append(f"{entry.key:15}: {truncate_text(entry.value)} [{entry.source}]")
        for pic in self.list_pictures():
            lines.append(f"{'picture':15}: <{pic.picture_type}: {pic.mime_type}, {len(pic.data)} bytes>")
        return "\n".join(lines)


def open_container(path: PathLike, policy: Optional[PriorityPolicy] = None) -> AudioContainer:
    """Open an audio file; raises FileNotFound or UnsupportedFormat."""
    return AudioContainer.open(path, policy=policy)
