"""
Tests for the ID3v1 trailer codec.
"""
import pytest

from tagmux.errors import CorruptTag, UnsupportedOperation
from tagmux.formats.id3v1 import ID3v1Block
from tagmux.model import BlockKind

from conftest import id3v1_bytes


def _entries(block):
    return {e.key: e.value for e in block.entries()}


class TestID3v1Parse:

    def test_v11_fields(self):
        block = ID3v1Block(id3v1_bytes(title="Song", artist="Band", album="Record",
                                        year="1987", comment="hi", track=5, genre=17))
        assert block.is_v11
        assert _entries(block) == {
            'TITLE': 'Song',
            'ARTIST': 'Band',
            'ALBUM': 'Record',
            'DATE': '1987',
            'COMMENT': 'hi',
            'TRACKNUMBER': '5',
            'GENRE': 'Rock',
        }
        assert all(e.source is BlockKind.ID3V1 for e in block.entries())

    def test_v10_has_no_track(self):
        block = ID3v1Block(id3v1_bytes(title="Song", comment="x" * 30))
        assert not block.is_v11
        assert block.track == 0
        assert _entries(block)['COMMENT'] == "x" * 30
        assert 'TRACKNUMBER' not in _entries(block)

    def test_space_padding_is_trimmed(self):
        raw = bytearray(id3v1_bytes())
        raw[3:33] = b'Padded'.ljust(30, b' ')
        assert _entries(ID3v1Block(bytes(raw)))['TITLE'] == 'Padded'

    def test_no_genre(self):
        block = ID3v1Block(id3v1_bytes(title="x"))
        assert block.genre is None
        assert 'GENRE' not in _entries(block)

    def test_bad_magic(self):
        with pytest.raises(CorruptTag):
            ID3v1Block(b'TAX' + b'\x00' * 125)

    def test_short_data(self):
        with pytest.raises(CorruptTag):
            ID3v1Block(b'TAG' + b'\x00' * 20)


class TestID3v1Write:

    def test_set_patches_only_that_field(self):
        original = id3v1_bytes(title="Old", artist="Keep Me", year="2001", track=3, genre=8)
        block = ID3v1Block(original)
        block.set('TITLE', ['New'])
        rendered = block.render()
        assert rendered[3:33] == b'New'.ljust(30, b'\x00')
        assert rendered[33:] == original[33:]
        assert block.dirty
        assert block.changed

    def test_long_values_are_cut(self):
        block = ID3v1Block()
        block.set('ARTIST', ['A' * 40])
        assert _entries(block)['ARTIST'] == 'A' * 30

    def test_track_switches_to_v11(self):
        block = ID3v1Block(id3v1_bytes(comment="c" * 30))
        block.set('TRACKNUMBER', ['4/10'])
        assert block.is_v11
        assert block.track == 4
        assert _entries(block)['COMMENT'] == 'c' * 28

    @pytest.mark.parametrize("value", ['0', '256', 'four'])
    def test_track_out_of_range(self, value):
        block = ID3v1Block()
        with pytest.raises(UnsupportedOperation):
            block.set('TRACKNUMBER', [value])
        assert not block.dirty

    def test_genre_by_name_and_number(self):
        block = ID3v1Block()
        block.set('GENRE', ['jazz'])
        assert block.genre == 'Jazz'
        block.set('GENRE', ['0'])
        assert block.genre == 'Blues'

    def test_unknown_genre_is_dropped(self):
        block = ID3v1Block()
        block.set('GENRE', ['Vaporwave Polka'])
        assert block.genre is None

    def test_unsupported_key(self):
        with pytest.raises(UnsupportedOperation):
            ID3v1Block().set('COMPOSER', ['Bach'])

    def test_remove(self):
        block = ID3v1Block(id3v1_bytes(title="T", track=2, genre=1))
        assert block.remove('TITLE')
        assert block.remove('TRACKNUMBER')
        assert block.remove('GENRE')
        assert not block.remove('TITLE')
        assert not block.remove('COMPOSER')
        assert block.entries() == []

    def test_new_block_is_not_on_disk(self):
        block = ID3v1Block()
        assert not block.on_disk
        assert block.render()[:3] == b'TAG'
        assert block.render()[127] == 255
        assert block.changed
