"""
ID3 (MP3) engine

Handles the two independent tags an MP3 can carry: an ID3v2 tag at offset 0
and a fixed 128-byte ID3v1 trailer. The ID3v2 frame layout is parsed and
written by mutagen; this module owns only which frames survive and how the
output file is assembled around the audio stream.
"""

import io
import re
import logging
from typing import Dict, List, Optional, Tuple

from mutagen import MutagenError
from mutagen.id3 import (
    ID3, ID3NoHeaderError,
    APIC, COMM, PRIV, POPM, TXXX, USLT, WXXX, TextFrame, UrlFrame
)
from mutagen.id3._tags import ID3SaveConfig, save_frame

from .base import BaseEngine
from ..config.constants import (
    ID3V1_SIZE, ID3V2_HEADER_SIZE, ID3V2_FOOTER_FLAG, ID3_SAFE_FRAMES,
    ID3_FRAME_NAMES, ID3V1_GENRES, PATH_MARKERS, UNIX_PATH_PREFIXES,
    PROJECT_FILE_EXTENSIONS
)
from ..core.exceptions import DecodeError
from ..core.models import ContainerRecord, InspectionReport, RecordClass, RecordInfo, StripPolicy
from ..core.utils import decode_synchsafe, encode_synchsafe

WINDOWS_PATH = re.compile(r'[A-Za-z]:\\[^\x00\r\n<>"|?*]+')
UNIX_PATH = re.compile(r'/[^\x00\r\n<>" \t]+')
PROJECT_PATH = re.compile(
    r'[^"<>\x00\r\n]+?(?:' + '|'.join(re.escape(ext) for ext in PROJECT_FILE_EXTENSIONS) + r')(?![A-Za-z0-9])'
)

# Frames are written in ID3v2.4 layout: synchsafe frame sizes, "/" text separator
V24_CONFIG = ID3SaveConfig(4, "/")


def id3v2_span(data: bytes) -> int:
    """Total bytes of a leading ID3v2 tag (header + body + footer), or 0 when absent."""
    if len(data) < ID3V2_HEADER_SIZE or data[0:3] != b"ID3":
        return 0
    major, flags = data[3], data[5]
    size = decode_synchsafe(bytes(data[6:10])) + ID3V2_HEADER_SIZE
    if major >= 4 and flags & ID3V2_FOOTER_FLAG:
        size += ID3V2_HEADER_SIZE
    return size


def has_id3v1(data: bytes) -> bool:
    """An ID3v1 tag is present iff the last 128 bytes start with 'TAG'."""
    return len(data) >= ID3V1_SIZE and data[-ID3V1_SIZE:-ID3V1_SIZE + 3] == b"TAG"


def _v1_text(raw: bytes) -> str:
    return raw.decode('latin-1').rstrip('\x00 ')


def parse_id3v1(data: bytes) -> Optional[Dict[str, str]]:
    """Decode the fixed-width ID3v1 trailer, or None when absent."""
    if not has_id3v1(data):
        return None
    tag = bytes(data[-ID3V1_SIZE:])
    comment = tag[97:127]
    fields = {
        'title': _v1_text(tag[3:33]),
        'artist': _v1_text(tag[33:63]),
        'album': _v1_text(tag[63:93]),
        'year': _v1_text(tag[93:97]),
        'comment': _v1_text(comment),
    }
    # ID3v1.1 stores a track number in the last comment byte
    if comment[28] == 0 and comment[29] != 0:
        fields['comment'] = _v1_text(comment[:28])
        fields['track'] = str(comment[29])
    genre = tag[127]
    genre_name = ID3V1_GENRES[genre] if genre < len(ID3V1_GENRES) else "Unknown"
    fields['genre'] = f"{genre} ({genre_name})"
    return fields


def audio_span(data: bytes) -> Tuple[int, int]:
    """Bounds of the audio stream between the ID3v2 tag end and the ID3v1 start."""
    start = id3v2_span(data)
    end = len(data) - ID3V1_SIZE if has_id3v1(data) else len(data)
    if start >= end:
        raise DecodeError("MP3", "no audio data found between ID3v2 and ID3v1 tags", start)
    return start, end


def load_tags(data: bytes) -> Optional[ID3]:
    """Parse the ID3v2 tag with mutagen; None when there is none or it cannot be read."""
    try:
        tags = ID3(io.BytesIO(data), translate=False, load_v1=False)
    except ID3NoHeaderError:
        return None
    except MutagenError as e:
        logging.debug(f"Could not parse ID3v2 tag: {e}")
        return None
    if tags.version < (2, 3, 0):
        # v2.2 frames have 3-character IDs that cannot be written as v2.4
        tags.update_to_v24()
    return tags


def format_unknown_data(data: bytes) -> str:
    """Render opaque frame data as text when it looks textual, else as a hex preview."""
    if not data:
        return "<empty>"

    text = data.decode('utf-8', errors='replace')
    printable = sum(1 for c in text if c.isascii() and (c.isprintable() or c.isspace()))

    if printable * 100 // len(text) > 60:
        has_paths = any(marker in text for marker in PATH_MARKERS)
        shown = text.replace('\x00', '\\0')
        if has_paths:
            return f"\"{shown}\" ⚠️  CONTAINS FILE PATHS"
        if len(shown) > 500:
            return f"\"{shown[:500]}... (truncated, total {len(data)} bytes)\""
        return f"\"{shown}\""

    hex_preview = " ".join(f"{b:02X}" for b in data[:16])
    if len(data) > 16:
        return f"<binary: {hex_preview} ... ({len(data)} bytes total)>"
    return f"<binary: {hex_preview} ({len(data)} bytes)>"


def extract_file_paths(data: bytes) -> List[str]:
    """Best-effort scan of private frame data for embedded filesystem paths."""
    text = data.decode('utf-8', errors='replace')
    paths = set()

    for line in text.splitlines():
        for match in WINDOWS_PATH.finditer(line):
            path = match.group(0).strip()
            if len(path) > 3:
                paths.add(path)

        if any(prefix in line for prefix in UNIX_PATH_PREFIXES):
            for match in UNIX_PATH.finditer(line):
                path = match.group(0).strip()
                if (len(path) > 5 and path.startswith(UNIX_PATH_PREFIXES)
                        and ('.' in path or path.endswith('/'))):
                    paths.add(path)

        for match in PROJECT_PATH.finditer(line):
            path = match.group(0).strip()
            if len(path) > 5:
                paths.add(path)

    return sorted(paths)


def format_frame_content(frame) -> str:
    """Human-readable rendering of a mutagen frame."""
    try:
        if isinstance(frame, TXXX):
            return f"{frame.desc}: {' / '.join(str(t) for t in frame.text)}"
        if isinstance(frame, COMM):
            return f"[{frame.lang}] {frame.desc}: {' / '.join(str(t) for t in frame.text)}"
        if isinstance(frame, TextFrame):
            return " / ".join(str(t) for t in frame.text)
        if isinstance(frame, WXXX):
            return f"{frame.desc}: {frame.url}"
        if isinstance(frame, UrlFrame):
            return frame.url
        if isinstance(frame, USLT):
            return f"[{frame.lang}] {frame.text}"
        if isinstance(frame, APIC):
            return f"Image ({frame.mime}), {len(frame.data)} bytes, description: '{frame.desc}'"
        if isinstance(frame, PRIV):
            return f"Owner: {frame.owner}, Data: {format_unknown_data(frame.data)}"
        if isinstance(frame, POPM):
            return f"{frame.email}: rating {frame.rating}, play count {getattr(frame, 'count', 0)}"
        return frame.pprint()
    except Exception as e:
        logging.debug(f"Could not render {frame.FrameID} frame: {e}")
        return "<other content type>"


class Id3Engine(BaseEngine):
    """Strip ID3v1/ID3v2 metadata from MP3 files."""

    format_name = "MP3"
    extensions = ('.mp3',)

    def walk(self, data: bytes) -> List[ContainerRecord]:
        tags = load_tags(data)
        if tags is None:
            return []
        return self.walk_tags(tags)

    @staticmethod
    def walk_tags(tags: ID3) -> List[ContainerRecord]:
        """One record per frame, in tag order; payload is the encoded v2.4 frame body."""
        records = []
        for frame in tags.values():
            encoded = save_frame(frame, config=V24_CONFIG)
            if not encoded:
                logging.debug(f"Skipping empty {frame.FrameID} frame")
                continue
            records.append(ContainerRecord(
                encoded[0:4], encoded[ID3V2_HEADER_SIZE:], content=frame))
        return records

    def classify(self, record: ContainerRecord) -> RecordClass:
        if record.name in ID3_SAFE_FRAMES:
            return RecordClass.SAFE
        return RecordClass.UNSAFE

    def reconstruct(self, data: bytes, records: List[ContainerRecord]) -> bytes:
        """Write the retained frames, in order, as an ID3v2.4 tag in front of the audio stream."""
        start, end = audio_span(data)

        output = bytearray()
        for record in records:
            output += record.identifier
            output += encode_synchsafe(record.byte_length)
            output += b"\x00\x00"
            output += record.payload

        header = b"ID3" + bytes([4, 0, 0]) + encode_synchsafe(len(output))
        return header + bytes(output) + bytes(data[start:end])

    def strip(self, data: bytes, policy: StripPolicy) -> bytes:
        policy = StripPolicy.parse(policy)
        if policy is StripPolicy.NONE:
            logging.debug("Strip mode: none - returning original MP3 unchanged")
            return data
        if policy is StripPolicy.ALL:
            return self._strip_all(data)
        return self._strip_unsafe(data)

    def _strip_all(self, data: bytes) -> bytes:
        start, end = audio_span(data)
        removed = start + (len(data) - end)
        if removed:
            logging.info(f"MP3: removed all ID3 tags ({removed / 1024:.2f} KB)")
        else:
            logging.debug("MP3: no ID3 tags found")
        return bytes(data[start:end])

    def _strip_unsafe(self, data: bytes) -> bytes:
        tags = load_tags(data)
        v1_present = has_id3v1(data)

        if tags is None:
            if v1_present:
                logging.info("MP3: no readable ID3v2 tag, removing ID3v1 trailer")
                return bytes(data[:-ID3V1_SIZE])
            return data

        records = self.walk_tags(tags)
        retained, removed = [], []
        for record in records:
            if self.keep(record, StripPolicy.SAFE):
                retained.append(record)
            else:
                removed.append(record.name)

        if not removed and not v1_present:
            logging.info("MP3: no unsafe frames to remove")
            return data

        if removed:
            logging.debug(f"MP3: removing frames {', '.join(removed)}")
        output = self.reconstruct(data, retained)
        logging.info(f"MP3: kept {len(retained)} safe frames, removed {len(removed)} unsafe frames "
                     f"({(len(data) - len(output)) / 1024:.2f} KB saved)")
        return output

    def inspect(self, data: bytes, file_path: str = "<memory>") -> InspectionReport:
        report = InspectionReport(file_path=file_path, format_name=self.format_name, file_size=len(data))

        v2_size = id3v2_span(data)
        v1_present = has_id3v1(data)

        report.properties['id3v2_size'] = v2_size if v2_size else "Not found"
        report.properties['id3v1'] = "Present (128 bytes)" if v1_present else "Not found"
        audio_end = len(data) - ID3V1_SIZE if v1_present else len(data)
        report.properties['audio_data_size'] = max(0, audio_end - v2_size)

        tags = load_tags(data)
        if tags is not None:
            report.properties['id3v2_version'] = ".".join(str(v) for v in tags.version[:2])
            for record in self.walk_tags(tags):
                frame = record.content
                details = {'value': format_frame_content(frame)}
                if isinstance(frame, PRIV):
                    details = {
                        'owner': frame.owner,
                        'data': format_unknown_data(frame.data),
                    }
                    paths = extract_file_paths(frame.data)
                    if paths:
                        details['file_paths'] = paths
                report.records.append(RecordInfo(
                    identifier=record.name,
                    size=record.byte_length,
                    classification=self.classify(record).value,
                    description=ID3_FRAME_NAMES.get(record.name, "Unknown Frame"),
                    details=details,
                ))
            report.properties['safe_frames'] = report.count(RecordClass.SAFE.value)
            report.properties['unsafe_frames'] = report.count(RecordClass.UNSAFE.value)
        elif v2_size:
            report.warnings.append("Could not parse ID3v2 tag")

        v1_fields = parse_id3v1(data)
        if v1_fields is not None:
            report.sections['ID3v1'] = {k: (v or "(empty)") for k, v in v1_fields.items()}

        return report
