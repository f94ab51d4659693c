"""
Static vocabularies for metaprep: extensions, chunk tables and display names.
"""

VERSION = "1.0.0"

SUPPORTED_EXTENSIONS = {
    'png': ['.png'],
    'webp': ['.webp'],
    'wav': ['.wav'],
    'mp3': ['.mp3'],
    'mp4': ['.mp4', '.m4v', '.m4a'],
}

# Formats that have a container engine (metadata stripping without re-encoding)
STRIPPABLE_FORMATS = ['png', 'webp', 'wav', 'mp3']

CONVERT_TARGETS = {
    'png': ('PNG', '.png'),
    'jpg': ('JPEG', '.jpg'),
    'jpeg': ('JPEG', '.jpg'),
    'webp': ('WEBP', '.webp'),
}

CONVERTIBLE_EXTENSIONS = ['.png', '.jpg', '.jpeg', '.webp']

# --- PNG ---

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Ancillary chunks needed for correct rendering or colour interpretation
PNG_SAFE_CHUNKS = frozenset([b"tRNS", b"gAMA", b"cHRM", b"sRGB", b"sBIT", b"pHYs"])

PNG_CHUNK_DESCRIPTIONS = {
    "IHDR": "Image Header",
    "PLTE": "Palette",
    "IDAT": "Image Data",
    "IEND": "Image End",
    "tRNS": "Transparency",
    "gAMA": "Gamma",
    "cHRM": "Chromaticity",
    "sRGB": "Standard RGB Color Space",
    "iCCP": "ICC Color Profile",
    "tEXt": "Textual Data",
    "zTXt": "Compressed Textual Data",
    "iTXt": "International Textual Data",
    "bKGD": "Background Color",
    "pHYs": "Physical Pixel Dimensions",
    "tIME": "Last Modification Time",
    "sBIT": "Significant Bits",
    "sPLT": "Suggested Palette",
    "hIST": "Histogram",
    "eXIf": "EXIF Data",
    "acTL": "Animation Control",
    "fcTL": "Frame Control",
    "fdAT": "Frame Data",
}

PNG_COLOR_TYPES = {
    0: "Grayscale",
    2: "RGB",
    3: "Indexed",
    4: "Grayscale + Alpha",
    6: "RGBA",
}

# --- WebP ---

WEBP_IMAGE_CHUNKS = frozenset([b"VP8 ", b"VP8L", b"ALPH"])
WEBP_CONTROL_CHUNKS = frozenset([b"VP8X", b"ANIM", b"ANMF"])

# VP8X feature flags, keyed by the metadata chunk each one advertises
VP8X_METADATA_FLAGS = {
    b"ICCP": 0x20,
    b"EXIF": 0x08,
    b"XMP ": 0x04,
}
VP8X_ALPHA_FLAG = 0x10
VP8X_ANIMATION_FLAG = 0x02

WEBP_CHUNK_DESCRIPTIONS = {
    "VP8 ": "Lossy VP8 bitstream",
    "VP8L": "Lossless VP8L bitstream",
    "VP8X": "Extended file format",
    "ANIM": "Animation parameters",
    "ANMF": "Animation frame",
    "ALPH": "Alpha channel",
    "ICCP": "ICC Color Profile",
    "EXIF": "EXIF metadata",
    "XMP ": "XMP metadata",
}

# --- WAV ---

WAV_ESSENTIAL_CHUNKS = frozenset([b"fmt ", b"data", b"fact"])
WAV_SAFE_CHUNKS = frozenset([b"LIST", b"cue ", b"smpl", b"inst"])

WAV_CHUNK_DESCRIPTIONS = {
    "fmt ": "Format",
    "data": "Audio Data",
    "fact": "Fact (sample count)",
    "LIST": "List Container",
    "cue ": "Cue Points",
    "smpl": "Sampler Info",
    "inst": "Instrument",
    "bext": "Broadcast Extension (BWF)",
    "iXML": "iXML Metadata",
    "JUNK": "Padding/Junk",
    "junk": "Padding/Junk",
    "PAD ": "Padding",
    "pad ": "Padding",
    "PEAK": "Peak Envelope",
    "DISP": "Display/Title",
    "acid": "Acid Loop Info",
    "strc": "Structure",
    "afsp": "AFsp Info",
    "cart": "Cart Chunk (AES46)",
    "labl": "Label",
    "note": "Note",
    "ltxt": "Labeled Text",
    "plst": "Playlist",
    "ID3 ": "ID3 Tag",
    "id3 ": "ID3 Tag",
}

WAV_AUDIO_FORMATS = {
    1: "PCM (uncompressed)",
    3: "IEEE Float",
    6: "A-law",
    7: "mu-law",
    0xFFFE: "Extensible",
}

WAV_INFO_FIELDS = {
    "IART": "Artist",
    "INAM": "Title",
    "IPRD": "Product/Album",
    "ICMT": "Comment",
    "ICRD": "Creation Date",
    "IGNR": "Genre",
    "ISFT": "Software",
    "ITRK": "Track Number",
    "ICOP": "Copyright",
    "IENG": "Engineer",
    "ITCH": "Technician",
    "ISRC": "Source",
}

# --- ID3 ---

ID3V1_SIZE = 128
ID3V2_HEADER_SIZE = 10
ID3V2_FOOTER_FLAG = 0x10
SYNCHSAFE_MAX = (1 << 28) - 1

ID3_SAFE_FRAMES = frozenset(["TIT2", "TPE1", "TALB", "TYER", "TDRC", "TCON", "TRCK"])

ID3_FRAME_NAMES = {
    "TIT2": "Title",
    "TPE1": "Artist",
    "TALB": "Album",
    "TYER": "Year",
    "TDRC": "Recording Time",
    "TCON": "Genre",
    "TRCK": "Track Number",
    "TPOS": "Part Of Set",
    "COMM": "Comment",
    "APIC": "Attached Picture",
    "USLT": "Unsynchronized Lyrics",
    "TXXX": "User Defined Text",
    "WXXX": "User Defined URL",
    "PRIV": "Private Data",
    "POPM": "Popularimeter",
    "TBPM": "BPM",
    "TCOM": "Composer",
    "TLEN": "Length",
    "TPUB": "Publisher",
    "TPE2": "Band/Orchestra/Accompaniment",
    "TPE3": "Conductor",
    "TPE4": "Interpreted/Remixed By",
    "TEXT": "Lyricist",
    "TCOP": "Copyright",
    "TENC": "Encoded By",
    "TSRC": "ISRC",
    "TSSE": "Encoder Settings",
    "GEOB": "General Encapsulated Object",
}

ID3V1_GENRES = [
    "Blues", "Classic Rock", "Country", "Dance", "Disco", "Funk", "Grunge",
    "Hip-Hop", "Jazz", "Metal", "New Age", "Oldies", "Other", "Pop", "R&B",
    "Rap", "Reggae", "Rock", "Techno", "Industrial", "Alternative", "Ska",
    "Death Metal", "Pranks", "Soundtrack", "Euro-Techno", "Ambient",
    "Trip-Hop", "Vocal", "Jazz+Funk", "Fusion", "Trance", "Classical",
    "Instrumental", "Acid", "House", "Game", "Sound Clip", "Gospel", "Noise",
    "AlternRock", "Bass",
]

# Markers of embedded filesystem paths in private frame payloads
PATH_MARKERS = [":\\", ":/", "/Users/", "/home/", "C:\\", "D:\\", ".prproj", ".aep", "\\AppData\\"]
UNIX_PATH_PREFIXES = ("/Users/", "/home/", "/mnt/", "/Volumes/")
PROJECT_FILE_EXTENSIONS = [".prproj", ".aep", ".fcp", ".fcpx", ".avp", ".psd", ".ai"]

# --- Video ---

FFMPEG_PRESETS = {
    1: "veryslow",
    2: "slow",
    3: "medium",
    4: "medium",
    5: "fast",
    6: "fast",
    7: "faster",
    8: "faster",
}
FFMPEG_FALLBACK_PRESET = "ultrafast"
