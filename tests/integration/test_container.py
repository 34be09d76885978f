"""
Integration tests for reading and writing properties through AudioContainer.
"""
import struct

import pytest
import mutagen.id3 as id3

from tagmux import AudioContainer, BlockKind, ContainerKind, PriorityPolicy, open_container
from tagmux.errors import FileNotFound, UnsupportedFormat

from conftest import TAGS, build_mp3, id3v1_bytes


def _append_corrupt_ape(path):
    # One item whose type bits are 3, which no APE reader accepts
    item = struct.pack('<II', 1, 6) + b'Bad\x00' + b'x'
    footer = b'APETAGEX' + struct.pack('<IIII', 2000, len(item) + 32, 1, 0) + b'\x00' * 8
    with open(path, 'ab') as f:
        f.write(item + footer)


class TestOpen:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFound):
            AudioContainer(tmp_path / "missing.flac")

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "readme.mp3"
        path.write_text("definitely not audio " * 20)
        with pytest.raises(UnsupportedFormat):
            open_container(path)

    def test_bytes_path(self, flac_file):
        c = AudioContainer(str(flac_file).encode('utf-8'))
        assert c.path == flac_file
        assert c.container_kind is ContainerKind.FLAC

    @pytest.mark.parametrize("fixture, kind", [
        ("mp3_file", ContainerKind.MPEG),
        ("flac_file", ContainerKind.FLAC),
        ("ogg_file", ContainerKind.OGG_VORBIS),
        ("mp4_file", ContainerKind.MP4),
        ("asf_file", ContainerKind.ASF),
        ("wav_file", ContainerKind.WAV),
    ])
    def test_container_kind(self, request, fixture, kind):
        path = request.getfixturevalue(fixture)
        with AudioContainer.managed(path) as c:
            assert c.container_kind is kind
            assert c.state == 'opened'
            assert not c.is_dirty

    def test_stream_info(self, flac_file, ogg_file, mp3_file):
        flac = AudioContainer(flac_file)
        assert flac.info.sample_rate == 44100
        assert flac.info.channels == 2
        assert flac.info.duration == 1
        assert flac.info.formatted_duration == "0:01"
        ogg = AudioContainer(ogg_file)
        assert ogg.info.sample_rate == 44100
        assert ogg.info.length == pytest.approx(1.0)
        assert AudioContainer(mp3_file).info.sample_rate == 44100

    def test_untagged_file_reads_empty(self, any_audio):
        c = AudioContainer(any_audio)
        assert c.get("TITLE") is None
        assert c.all_keys() == []
        assert c.all_properties() == {}
        assert c.list_pictures() == []

    def test_close(self, mp3_file):
        c = AudioContainer(mp3_file)
        c.close()
        assert c.state == 'closed'


class TestRoundTrip:
    """Write, save, reopen on every container."""

    def test_basic_fields(self, any_audio):
        with AudioContainer.managed(any_audio) as c:
            assert c.set("TITLE", TAGS["title"])
            assert c.set("artist", TAGS["artist"])
            assert c.set("ALBUM", TAGS["album"])
            assert c.state == 'dirty'
            assert c.save()
            assert c.state == 'opened'

        with AudioContainer.managed(any_audio) as c:
            assert c.get("TITLE") == TAGS["title"]
            assert c.get("ARTIST") == TAGS["artist"]
            assert c.get("album") == TAGS["album"]
            assert {"TITLE", "ARTIST", "ALBUM"} <= set(c.all_keys())

    def test_convenience_accessors(self, any_audio):
        c = AudioContainer(any_audio)
        c.title = "Accessor Title"
        c.composer = "J. S. Bach"
        c.track = 3
        assert c.save()

        c = AudioContainer(any_audio)
        assert c.title == "Accessor Title"
        assert c.composer == "J. S. Bach"
        assert c.track == 3

    def test_release_accessors(self, any_audio):
        values = {
            'subtitle': "Live at the Hall",
            'composer_sort': "Bach, Johann Sebastian",
            'asin': "B000002UAL",
            'copyright': "2001 Some Label",
            'encoded_by': "Someone",
            'mood': "Calm",
            'media': "CD",
            'catalog_number': "CAT-42",
            'barcode': "0123456789012",
            'release_country': "GB",
            'release_status': "official",
            'release_type': "album",
            'musicbrainz_album_artist_id': "89ad4ac3-39f7-470e-963a-56509c546377",
            'musicbrainz_release_group_id': "0da580f2-6768-498f-af9d-2becaddf15e0",
            'musicbrainz_release_track_id': "f2a6fbc3-9d1a-4dfa-93e5-c4d6b4c0e2b1",
            'musicbrainz_work_id': "1a2b3c4d-0000-4000-8000-000000000001",
            'acoustid_id': "7e2b5b8c-3b1f-4c8a-9a8d-1f2e3d4c5b6a",
            'acoustid_fingerprint': "AQADtEmUaEkSRZEGAAAAAA",
            'musicip_puid': "a1b2c3d4-0000-0000-0000-000000000000",
        }
        c = AudioContainer(any_audio)
        for name, value in values.items():
            setattr(c, name, value)
        assert c.save()

        c = AudioContainer(any_audio)
        assert {name: getattr(c, name) for name in values} == values

    def test_unicode_values(self, any_audio):
        c = AudioContainer(any_audio)
        c.set("ARTIST", "Unicode: 🎵测试йцук")
        assert c.save()
        assert AudioContainer(any_audio).get("ARTIST") == "Unicode: 🎵测试йцук"

    @pytest.mark.parametrize("fixture", ["mp3_file", "flac_file", "ogg_file", "asf_file"])
    def test_multiple_values(self, request, fixture):
        path = request.getfixturevalue(fixture)
        c = AudioContainer(path)
        c.set("ARTIST", ["First", "Second"])
        assert c.save()
        c = AudioContainer(path)
        assert c.get("ARTIST") == "First"
        assert c.get_values("ARTIST") == ["First", "Second"]

    def test_custom_key_on_mp3_uses_txxx(self, mp3_file):
        c = AudioContainer(mp3_file)
        c.set("MOOD_COLOUR", "blue")
        c.set("MUSICBRAINZ_ALBUMID", "0f7a1b26-0000-4000-8000-000000000001")
        assert c.save()
        tags = id3.ID3(mp3_file)
        assert tags.getall("TXXX:MOOD_COLOUR")[0].text == ["blue"]
        assert tags.getall("TXXX:MusicBrainz Album Id")
        c = AudioContainer(mp3_file)
        assert c.get("mood_colour") == "blue"
        assert c.musicbrainz_album_id == "0f7a1b26-0000-4000-8000-000000000001"

    def test_mp4_freeform_and_track_pair(self, mp4_file):
        c = AudioContainer(mp4_file)
        c.set("TRACKNUMBER", "4/12")
        c.set("LABEL", "Test Records")
        assert c.save()
        c = AudioContainer(mp4_file)
        assert c.get("TRACKNUMBER") == "4/12"
        assert c.track == 4
        assert c.label == "Test Records"
        assert c.host.tags["trkn"] == [(4, 12)]

    def test_mp4_rejects_non_numeric_bpm(self, mp4_file):
        c = AudioContainer(mp4_file)
        assert not c.set("BPM", "fast")
        assert c.set("BPM", "128")
        assert c.bpm == 128

    def test_performers(self, mp3_file, flac_file):
        for path in (mp3_file, flac_file):
            c = AudioContainer(path)
            assert c.set_performer("Jimi", "guitar")
            assert c.set_performer("Ringo", "Drums")
            assert c.save()
            c = AudioContainer(path)
            assert c.performer("GUITAR") == "Jimi"
            assert c.all_performers() == {"GUITAR": ["Jimi"], "DRUMS": ["Ringo"]}

    def test_year_reads_leading_digits(self, flac_file):
        c = AudioContainer(flac_file)
        c.set("DATE", "2024-05-01")
        assert c.year == 2024
        c.year = None
        assert c.get("DATE") is None

    def test_set_empty_key_refused(self, mp3_file):
        assert not AudioContainer(mp3_file).set("  ", "x")

    def test_set_unwritable_source_refused(self, flac_file):
        c = AudioContainer(flac_file)
        assert not c.set("TITLE", "x", source="APE")
        assert not c.is_dirty


class TestPriority:
    """ID3v2 over APE over ID3v1 on MPEG."""

    def test_id3v2_wins_and_v1_fills_gaps(self, tagged_mp3):
        c = AudioContainer(tagged_mp3)
        assert c.get("TITLE") == "ID3v2 Title"
        assert c.get("DATE") == "1999"
        assert c.get("GENRE") == "Rock"
        assert c.year == 1999
        sources = [(e.source, e.value) for e in c.get_all("TITLE")]
        assert sources == [(BlockKind.ID3V2, "ID3v2 Title"), (BlockKind.ID3V1, "ID3v1 Title")]

    def test_remove_from_one_block_exposes_next(self, tagged_mp3):
        c = AudioContainer(tagged_mp3)
        assert c.remove_property("TITLE", BlockKind.ID3V2)
        assert c.get("TITLE") == "ID3v1 Title"
        assert c.save()
        c = AudioContainer(tagged_mp3)
        assert c.get("TITLE") == "ID3v1 Title"
        assert [e.source for e in c.get_all("TITLE")] == [BlockKind.ID3V1]

    def test_set_none_only_touches_primary(self, tagged_mp3):
        c = AudioContainer(tagged_mp3)
        assert c.set("TITLE", None)
        assert c.get("TITLE") == "ID3v1 Title"

    def test_purge_removes_everywhere(self, tagged_mp3):
        c = AudioContainer(tagged_mp3)
        assert c.purge_property("TITLE") == 2
        assert c.get("TITLE") is None
        assert c.save()
        assert AudioContainer(tagged_mp3).get("TITLE") is None

    def test_write_to_named_source(self, tagged_mp3):
        c = AudioContainer(tagged_mp3)
        assert c.set("ARTIST", "Only In V1", source="ID3v1")
        assert c.get("ARTIST") == "Test Artist"
        assert c.save()
        entries = AudioContainer(tagged_mp3).get_all("ARTIST")
        assert [(e.source, e.value) for e in entries] == [
            (BlockKind.ID3V2, "Test Artist"), (BlockKind.ID3V1, "Only In V1")]

    def test_ape_between_v2_and_v1(self, tmp_path):
        path = build_mp3(tmp_path / "three.mp3",
                         frames=[id3.TPE1(encoding=3, text=["V2 Artist"])],
                         v1=id3v1_bytes(title="V1 Title", album="V1 Album"), ape=True)
        c = AudioContainer(path)
        assert c.get("ARTIST") == "V2 Artist"
        assert c.get("TITLE") == "APE Title"
        assert c.get("ALBUM") == "V1 Album"
        assert c.get("CATALOG") == "CAT-1"

    def test_injected_policy(self, tmp_path):
        path = build_mp3(tmp_path / "policy.mp3",
                         frames=[id3.TIT2(encoding=3, text=["V2 Title"])],
                         v1=id3v1_bytes(title="V1 Title"))
        policy = PriorityPolicy(orders={ContainerKind.MPEG: [BlockKind.ID3V1, BlockKind.ID3V2]})
        c = AudioContainer(path, policy=policy)
        assert c.get("TITLE") == "V1 Title"
        assert c.primary_block_kind is BlockKind.ID3V1

    def test_raw_listing_includes_native_frames(self, tmp_path):
        path = build_mp3(tmp_path / "priv.mp3", frames=[
            id3.TIT2(encoding=3, text=["T"]),
            id3.PRIV(owner="com.example", data=b"\x00\x01\x02"),
        ])
        c = AudioContainer(path)
        assert c.all_keys() == ["TITLE"]
        native = [e for e in c.all_raw() if e.native]
        assert len(native) == 1
        assert native[0].key.startswith("PRIV")


class TestCorruptBlocks:

    def test_corrupt_ape_is_isolated(self, tagged_mp3):
        _append_corrupt_ape(tagged_mp3)
        c = AudioContainer(tagged_mp3)
        assert BlockKind.APE in c.corrupt_blocks
        assert c.get("TITLE") == "ID3v2 Title"
        assert not c.set("TITLE", "nope", source="APE")

    def test_save_leaves_corrupt_block_bytes(self, mp3_file):
        _append_corrupt_ape(mp3_file)
        tail = mp3_file.read_bytes()[-48:]
        c = AudioContainer(mp3_file)
        assert c.set("TITLE", "fresh")
        assert c.save()
        assert mp3_file.read_bytes()[-48:] == tail
        assert AudioContainer(mp3_file).get("TITLE") == "fresh"

    def test_display(self, tagged_mp3):
        text = str(AudioContainer(tagged_mp3))
        assert "ID3v2 Title" in text
        assert "[ID3v1]" in text
