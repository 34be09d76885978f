"""
Native <-> canonical key tables for every tag format.

Canonical keys are uppercase identifiers (TITLE, ALBUMARTIST, PERFORMER:<ROLE>).
These tables are configuration data; anything not listed here falls back
to a format-specific free-form slot (TXXX, freeform atoms, plain keys).
"""

from typing import Dict, Optional


def normalize_key(key: str) -> str:
    """Canonical keys are compared stripped and uppercased."""
    return str(key).strip().upper()


def _reverse(table: Dict[str, str]) -> Dict[str, str]:
    # First native key listed for a canonical key wins on write
    out = {}
    for native, canon in table.items():
        out.setdefault(canon, native)
    return out


# ---------- ID3v2 ----------

# Text information frames
ID3_TEXT_FRAMES = {
    'TIT1': 'CONTENTGROUP',
    'TIT2': 'TITLE',
    'TIT3': 'SUBTITLE',
    'TPE1': 'ARTIST',
    'TPE2': 'ALBUMARTIST',
    'TPE3': 'CONDUCTOR',
    'TPE4': 'REMIXER',
    'TALB': 'ALBUM',
    'TCON': 'GENRE',
    'TRCK': 'TRACKNUMBER',
    'TPOS': 'DISCNUMBER',
    'TDRC': 'DATE',
    'TDOR': 'ORIGINALDATE',
    'TDRL': 'RELEASEDATE',
    'TDTG': 'TAGGINGDATE',
    'TDEN': 'ENCODINGTIME',
    'TCOM': 'COMPOSER',
    'TEXT': 'LYRICIST',
    'TOLY': 'ORIGINALLYRICIST',
    'TOPE': 'ORIGINALARTIST',
    'TOAL': 'ORIGINALALBUM',
    'TOFN': 'ORIGINALFILENAME',
    'TBPM': 'BPM',
    'TSRC': 'ISRC',
    'TCOP': 'COPYRIGHT',
    'TENC': 'ENCODEDBY',
    'TSSE': 'ENCODING',
    'TPUB': 'LABEL',
    'TLAN': 'LANGUAGE',
    'TMOO': 'MOOD',
    'TKEY': 'INITIALKEY',
    'TMED': 'MEDIA',
    'TLEN': 'LENGTH',
    'TOWN': 'OWNER',
    'TRSN': 'RADIOSTATION',
    'TRSO': 'RADIOSTATIONOWNER',
    'TSOT': 'TITLESORT',
    'TSOP': 'ARTISTSORT',
    'TSOA': 'ALBUMSORT',
    'TSO2': 'ALBUMARTISTSORT',
    'TSOC': 'COMPOSERSORT',
    'TCMP': 'COMPILATION',
    'GRP1': 'GROUPING',
    'MVNM': 'MOVEMENTNAME',
    'MVIN': 'MOVEMENTNUMBER',
}
ID3_TEXT_KEYS = _reverse(ID3_TEXT_FRAMES)

# URL link frames (one URL each)
ID3_URL_FRAMES = {
    'WCOP': 'COPYRIGHTURL',
    'WOAF': 'FILEWEBPAGE',
    'WOAR': 'ARTISTWEBPAGE',
    'WOAS': 'AUDIOSOURCEWEBPAGE',
    'WORS': 'RADIOSTATIONWEBPAGE',
    'WPAY': 'PAYMENTWEBPAGE',
    'WPUB': 'PUBLISHERWEBPAGE',
}
ID3_URL_KEYS = _reverse(ID3_URL_FRAMES)

# Well-known TXXX descriptions; other descriptions map to desc.upper()
ID3_TXXX_DESCRIPTIONS = {
    'MusicBrainz Artist Id': 'MUSICBRAINZ_ARTISTID',
    'MusicBrainz Album Id': 'MUSICBRAINZ_ALBUMID',
    'MusicBrainz Album Artist Id': 'MUSICBRAINZ_ALBUMARTISTID',
    'MusicBrainz Release Group Id': 'MUSICBRAINZ_RELEASEGROUPID',
    'MusicBrainz Release Track Id': 'MUSICBRAINZ_RELEASETRACKID',
    'MusicBrainz Work Id': 'MUSICBRAINZ_WORKID',
    'MusicBrainz Album Release Country': 'RELEASECOUNTRY',
    'MusicBrainz Album Status': 'RELEASESTATUS',
    'MusicBrainz Album Type': 'RELEASETYPE',
    'Acoustid Id': 'ACOUSTID_ID',
    'Acoustid Fingerprint': 'ACOUSTID_FINGERPRINT',
    'MusicIP PUID': 'MUSICIP_PUID',
    'ASIN': 'ASIN',
    'CATALOGNUMBER': 'CATALOGNUMBER',
    'BARCODE': 'BARCODE',
}
ID3_TXXX_KEYS = _reverse(ID3_TXXX_DESCRIPTIONS)

# UFID owner carrying the MusicBrainz recording id
MUSICBRAINZ_UFID_OWNER = 'http://musicbrainz.org'
MUSICBRAINZ_TRACKID = 'MUSICBRAINZ_TRACKID'

# TIPL involvement roles
ID3_TIPL_ROLES = {
    'ARRANGER': 'ARRANGER',
    'ENGINEER': 'ENGINEER',
    'PRODUCER': 'PRODUCER',
    'DJ-MIX': 'DJMIXER',
    'MIX': 'MIXER',
}
ID3_TIPL_KEYS = _reverse(ID3_TIPL_ROLES)

PERFORMER_PREFIX = 'PERFORMER:'


# ---------- APEv2 ----------

APE_KEYS = {
    'TITLE': 'TITLE',
    'ARTIST': 'ARTIST',
    'ALBUM': 'ALBUM',
    'ALBUM ARTIST': 'ALBUMARTIST',
    'ALBUMARTIST': 'ALBUMARTIST',
    'YEAR': 'DATE',
    'TRACK': 'TRACKNUMBER',
    'DISC': 'DISCNUMBER',
    'GENRE': 'GENRE',
    'COMMENT': 'COMMENT',
    'COMPOSER': 'COMPOSER',
    'CONDUCTOR': 'CONDUCTOR',
    'LYRICIST': 'LYRICIST',
    'MIXARTIST': 'REMIXER',
    'PUBLISHER': 'LABEL',
    'COPYRIGHT': 'COPYRIGHT',
    'ISRC': 'ISRC',
    'BPM': 'BPM',
    'LYRICS': 'LYRICS',
    'DJ MIXER': 'DJMIXER',
}
# APE keys are case-insensitive; these are the spellings written for new items
APE_WRITE_KEYS = {
    'TITLE': 'Title',
    'ARTIST': 'Artist',
    'ALBUM': 'Album',
    'ALBUMARTIST': 'Album Artist',
    'DATE': 'Year',
    'TRACKNUMBER': 'Track',
    'DISCNUMBER': 'Disc',
    'GENRE': 'Genre',
    'COMMENT': 'Comment',
    'COMPOSER': 'Composer',
    'CONDUCTOR': 'Conductor',
    'LYRICIST': 'Lyricist',
    'REMIXER': 'MixArtist',
    'LABEL': 'Publisher',
    'COPYRIGHT': 'Copyright',
    'ISRC': 'ISRC',
    'BPM': 'BPM',
    'LYRICS': 'Lyrics',
    'DJMIXER': 'DJ Mixer',
}

APE_COVER_PREFIX = 'cover art ('


def ape_to_canonical(key: str) -> str:
    return APE_KEYS.get(key.upper(), key.upper())


def canonical_to_ape(key: str) -> str:
    return APE_WRITE_KEYS.get(key, key)


# ---------- MP4 ----------

MP4_TEXT_ATOMS = {
    '\xa9nam': 'TITLE',
    '\xa9ART': 'ARTIST',
    '\xa9alb': 'ALBUM',
    'aART': 'ALBUMARTIST',
    '\xa9gen': 'GENRE',
    '\xa9day': 'DATE',
    '\xa9cmt': 'COMMENT',
    '\xa9wrt': 'COMPOSER',
    '\xa9lyr': 'LYRICS',
    '\xa9grp': 'GROUPING',
    '\xa9too': 'ENCODING',
    '\xa9enc': 'ENCODEDBY',
    '\xa9mvn': 'MOVEMENTNAME',
    '\xa9wrk': 'WORK',
    'cprt': 'COPYRIGHT',
    'desc': 'DESCRIPTION',
    'sonm': 'TITLESORT',
    'soar': 'ARTISTSORT',
    'soal': 'ALBUMSORT',
    'soaa': 'ALBUMARTISTSORT',
    'soco': 'COMPOSERSORT',
}
MP4_TEXT_KEYS = _reverse(MP4_TEXT_ATOMS)

MP4_TRACK_ATOM = 'trkn'
MP4_DISC_ATOM = 'disk'
MP4_BPM_ATOM = 'tmpo'
MP4_COMPILATION_ATOM = 'cpil'
MP4_COVER_ATOM = 'covr'

# Freeform atom names under the iTunes namespace
MP4_FREEFORM_NAMES = {
    'MusicBrainz Track Id': 'MUSICBRAINZ_TRACKID',
    'MusicBrainz Artist Id': 'MUSICBRAINZ_ARTISTID',
    'MusicBrainz Album Id': 'MUSICBRAINZ_ALBUMID',
    'MusicBrainz Album Artist Id': 'MUSICBRAINZ_ALBUMARTISTID',
    'MusicBrainz Release Group Id': 'MUSICBRAINZ_RELEASEGROUPID',
    'MusicBrainz Release Track Id': 'MUSICBRAINZ_RELEASETRACKID',
    'MusicBrainz Work Id': 'MUSICBRAINZ_WORKID',
    'MusicBrainz Album Release Country': 'RELEASECOUNTRY',
    'MusicBrainz Album Status': 'RELEASESTATUS',
    'MusicBrainz Album Type': 'RELEASETYPE',
    'Acoustid Id': 'ACOUSTID_ID',
    'Acoustid Fingerprint': 'ACOUSTID_FINGERPRINT',
    'MusicIP PUID': 'MUSICIP_PUID',
    'ASIN': 'ASIN',
    'CATALOGNUMBER': 'CATALOGNUMBER',
    'BARCODE': 'BARCODE',
    'SUBTITLE': 'SUBTITLE',
    'MOOD': 'MOOD',
    'MEDIA': 'MEDIA',
    'CONDUCTOR': 'CONDUCTOR',
    'LYRICIST': 'LYRICIST',
    'REMIXER': 'REMIXER',
    'ISRC': 'ISRC',
    'LABEL': 'LABEL',
    'ORIGINALDATE': 'ORIGINALDATE',
}
MP4_FREEFORM_KEYS = _reverse(MP4_FREEFORM_NAMES)


def mp4_freeform_to_canonical(name: str) -> str:
    return MP4_FREEFORM_NAMES.get(name, name.upper())


# ---------- ASF ----------

ASF_ATTRIBUTES = {
    'Title': 'TITLE',
    'Author': 'ARTIST',
    'Description': 'COMMENT',
    'Copyright': 'COPYRIGHT',
    'WM/AlbumTitle': 'ALBUM',
    'WM/AlbumArtist': 'ALBUMARTIST',
    'WM/Genre': 'GENRE',
    'WM/Year': 'DATE',
    'WM/OriginalReleaseYear': 'ORIGINALDATE',
    'WM/TrackNumber': 'TRACKNUMBER',
    'WM/PartOfSet': 'DISCNUMBER',
    'WM/Composer': 'COMPOSER',
    'WM/Writer': 'LYRICIST',
    'WM/Conductor': 'CONDUCTOR',
    'WM/ModifiedBy': 'REMIXER',
    'WM/BeatsPerMinute': 'BPM',
    'WM/ISRC': 'ISRC',
    'WM/Publisher': 'LABEL',
    'WM/EncodedBy': 'ENCODEDBY',
    'WM/Lyrics': 'LYRICS',
    'WM/Mood': 'MOOD',
    'WM/InitialKey': 'INITIALKEY',
    'WM/SubTitle': 'SUBTITLE',
    'WM/ContentGroupDescription': 'CONTENTGROUP',
    'WM/Media': 'MEDIA',
    'WM/Language': 'LANGUAGE',
    'WM/IsCompilation': 'COMPILATION',
    'WM/TitleSortOrder': 'TITLESORT',
    'WM/ArtistSortOrder': 'ARTISTSORT',
    'WM/AlbumSortOrder': 'ALBUMSORT',
    'WM/AlbumArtistSortOrder': 'ALBUMARTISTSORT',
    'WM/ComposerSortOrder': 'COMPOSERSORT',
    'MusicBrainz/Track Id': 'MUSICBRAINZ_TRACKID',
    'MusicBrainz/Artist Id': 'MUSICBRAINZ_ARTISTID',
    'MusicBrainz/Album Id': 'MUSICBRAINZ_ALBUMID',
    'MusicBrainz/Album Artist Id': 'MUSICBRAINZ_ALBUMARTISTID',
    'MusicBrainz/Release Group Id': 'MUSICBRAINZ_RELEASEGROUPID',
    'MusicBrainz/Release Track Id': 'MUSICBRAINZ_RELEASETRACKID',
    'MusicBrainz/Work Id': 'MUSICBRAINZ_WORKID',
    'MusicBrainz/Album Release Country': 'RELEASECOUNTRY',
    'MusicBrainz/Album Status': 'RELEASESTATUS',
    'MusicBrainz/Album Type': 'RELEASETYPE',
    'WM/CatalogNo': 'CATALOGNUMBER',
    'WM/Barcode': 'BARCODE',
    'Acoustid/Id': 'ACOUSTID_ID',
    'Acoustid/Fingerprint': 'ACOUSTID_FINGERPRINT',
    'MusicIP/PUID': 'MUSICIP_PUID',
}
ASF_KEYS = _reverse(ASF_ATTRIBUTES)
ASF_PICTURE_ATTRIBUTE = 'WM/Picture'


def performer_role(key: str) -> Optional[str]:
    """Return ROLE for a PERFORMER:ROLE key, else None."""
    if key.startswith(PERFORMER_PREFIX):
        return key[len(PERFORMER_PREFIX):]
    return None
