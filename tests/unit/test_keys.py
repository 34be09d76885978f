"""Tests for key normalization and the native key tables."""

from tagmux import keys


class TestKeys:

    def test_normalize(self):
        assert keys.normalize_key("  albumArtist ") == "ALBUMARTIST"
        assert keys.normalize_key("performer:guitar") == "PERFORMER:GUITAR"

    def test_tables_reverse_to_first_native_key(self):
        assert keys.ID3_TEXT_KEYS['TITLE'] == 'TIT2'
        assert keys.ID3_TEXT_KEYS['DATE'] == 'TDRC'
        assert keys.MP4_TEXT_KEYS['ALBUMARTIST'] == 'aART'
        assert keys.ASF_KEYS['ARTIST'] == 'Author'
        assert keys.ID3_TXXX_KEYS['MUSICBRAINZ_ALBUMID'] == 'MusicBrainz Album Id'

    def test_ape_keys(self):
        assert keys.ape_to_canonical('Album Artist') == 'ALBUMARTIST'
        assert keys.ape_to_canonical('year') == 'DATE'
        assert keys.ape_to_canonical('Catalog') == 'CATALOG'
        assert keys.canonical_to_ape('TRACKNUMBER') == 'Track'
        assert keys.canonical_to_ape('CATALOG') == 'CATALOG'

    def test_mp4_freeform(self):
        assert keys.mp4_freeform_to_canonical('MusicBrainz Track Id') == 'MUSICBRAINZ_TRACKID'
        assert keys.mp4_freeform_to_canonical('my field') == 'MY FIELD'

    def test_performer_role(self):
        assert keys.performer_role('PERFORMER:VIOLIN') == 'VIOLIN'
        assert keys.performer_role('ARTIST') is None
