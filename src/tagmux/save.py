"""
Save/rewrite engine.

Every modified block is serialized into a staged copy of the file, which
then replaces the original with a single os.replace. The original is never
written to directly, except for the in-place rewrite of an existing ID3v1
trailer when that is the only change.
"""

import os
import shutil
import logging
import tempfile
from pathlib import Path
from typing import Optional

from .errors import PartialSerializationError, TagIOError
from .formats.id3v1 import TAG_SIZE, ID3v1Block
from .model import BlockKind, TRAILER_CONTAINERS
from .utils import Config, get_file_hash

logger = logging.getLogger(__name__)

# Blocks are written front to back; ID3v1 is handled as a raw trailer
COMMIT_ORDER = (BlockKind.ID3V2, BlockKind.APE, BlockKind.XIPH, BlockKind.MP4, BlockKind.ASF)


def stage_copy(src: Path, dst: Path) -> None:
    """Copy ``src`` over ``dst`` in chunks, optionally verifying the copy by hash.

    Raises:
        TagIOError: copy failed or the checksums differ
    """
    with open(src, 'rb') as f_src, open(dst, 'wb') as f_dst:
        for chunk in iter(lambda: f_src.read(Config.CHUNK_SIZE), b""):
            f_dst.write(chunk)

    if Config.VERIFY_STAGING and get_file_hash(src) != get_file_hash(dst):
        raise TagIOError(f"Staged copy of {src} does not match the original")


class SaveEngine:
    """
    Commits the dirty blocks of one container to disk.

    Only an existing ID3v1 trailer is ever rewritten in place, and only when it
    is the sole change: its size is fixed and it is a single 128-byte write.
    Every other change, including ones that would fit into existing tag
    padding, goes through the staged copy and one os.replace, so a failure at
    any point leaves the original file untouched.
    """

    def __init__(self, container):
        self.container = container

    def pending(self) -> list:
        """Blocks with something to write; an ID3v1 edit that restored the original bytes is skipped."""
        out = []
        for block in self.container.blocks.values():
            if block.removed:
                out.append(block)
            elif block.dirty and not (isinstance(block, ID3v1Block) and not block.changed):
                out.append(block)
        return out

    def save(self) -> None:
        """
        Write all pending changes.

        Raises:
            PartialSerializationError: a block could not be serialized
            TagIOError: staging or replacing the file failed
        """
        pending = self.pending()
        if not pending:
            return

        v1 = self.container.blocks.get(BlockKind.ID3V1)
        if (len(pending) == 1 and pending[0] is v1 and not v1.removed
                and v1.on_disk and self.container.detection.has_id3v1):
            self._patch_id3v1(v1)
            return

        self._rewrite()

    # ---------- ID3v1 in place ----------

    def _patch_id3v1(self, block: ID3v1Block) -> None:
        path = self.container.path
        try:
            with open(path, 'r+b') as f:
                f.seek(-TAG_SIZE, os.SEEK_END)
                if f.read(3) != b'TAG':
                    raise TagIOError(f"ID3v1 trailer of {path} moved since it was opened")
                f.seek(-TAG_SIZE, os.SEEK_END)
                f.write(block.render())
                f.flush()
                if Config.FSYNC:
                    os.fsync(f.fileno())
        except OSError as e:
            raise TagIOError(f"Cannot rewrite ID3v1 trailer of {path}: {e}") from e
        logger.debug(f"Rewrote ID3v1 trailer of {path.name} in place")

    # ---------- Staged rewrite ----------

    def _rewrite(self) -> None:
        path = self.container.path
        blocks = self.container.blocks
        trailer = self.container.container_kind in TRAILER_CONTAINERS

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=Config.TEMP_SUFFIX,
                                            dir=str(path.parent))
            os.close(fd)
        except OSError as e:
            raise TagIOError(f"Cannot create a staging file next to {path}: {e}") from e
        tmp = Path(tmp_name)

        try:
            try:
                stage_copy(path, tmp)
                original_v1 = self._detach_id3v1(tmp) if trailer and self.container.detection.has_id3v1 else None
            except TagIOError:
                raise
            except OSError as e:
                raise TagIOError(f"Cannot stage {path}: {e}") from e

            for kind in COMMIT_ORDER:
                block = blocks.get(kind)
                if block is None:
                    continue
                try:
                    if block.removed:
                        if block.on_disk:
                            block.strip(tmp)
                    elif block.dirty:
                        block.commit(tmp)
                except Exception as e:
                    raise PartialSerializationError(f"Failed to write {kind} tag of {path.name}: {e}") from e

            try:
                if trailer:
                    self._append_id3v1(tmp, blocks.get(BlockKind.ID3V1), original_v1)
                self._replace(tmp, path)
            except OSError as e:
                raise TagIOError(f"Cannot replace {path}: {e}") from e
        finally:
            if tmp.exists():
                try:
                    tmp.unlink()
                except OSError as e:
                    logger.warning(f"Could not remove staging file {tmp}: {e}")

        logger.debug(f"Saved {path.name} through staging file {tmp.name}")

    @staticmethod
    def _detach_id3v1(tmp: Path) -> Optional[bytes]:
        """Cut the ID3v1 trailer off the staged file and return its bytes."""
        with open(tmp, 'r+b') as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            if size < TAG_SIZE:
                return None
            f.seek(size - TAG_SIZE)
            raw = f.read(TAG_SIZE)
            if raw[:3] != b'TAG':
                return None
            f.truncate(size - TAG_SIZE)
        return raw

    @staticmethod
    def _append_id3v1(tmp: Path, block: Optional[ID3v1Block], original: Optional[bytes]) -> None:
        if block is not None:
            if block.removed:
                return
            data = block.render()
        elif original is not None:
            data = original
        else:
            return
        with open(tmp, 'ab') as f:
            f.write(data)

    @staticmethod
    def _replace(tmp: Path, path: Path) -> None:
        if Config.FSYNC:
            with open(tmp, 'rb+') as f:
                os.fsync(f.fileno())
        shutil.copymode(path, tmp)
        os.replace(tmp, path)
