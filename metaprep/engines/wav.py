"""
WAV RIFF engine
"""

import struct
from typing import List

from .base import BaseEngine
from .riff import check_riff_header, walk_riff_chunks, build_riff
from ..config.constants import (
    WAV_ESSENTIAL_CHUNKS, WAV_SAFE_CHUNKS, WAV_CHUNK_DESCRIPTIONS,
    WAV_AUDIO_FORMATS, WAV_INFO_FIELDS
)
from ..core.exceptions import DecodeError
from ..core.models import ContainerRecord, InspectionReport, RecordClass, RecordInfo


class WavEngine(BaseEngine):
    """Strip broadcast/iXML/ID3 and other authoring chunks from WAV files.

    Unlike the other engines, a final chunk that claims more bytes than the
    file holds is clamped rather than rejected.
    """

    format_name = "WAV"
    extensions = ('.wav',)

    def walk(self, data: bytes) -> List[ContainerRecord]:
        check_riff_header(data, b"WAVE", self.format_name)
        return walk_riff_chunks(data, self.format_name, tolerate_truncation=True)

    def classify(self, record: ContainerRecord) -> RecordClass:
        if record.identifier in WAV_ESSENTIAL_CHUNKS:
            return RecordClass.ESSENTIAL
        if record.identifier in WAV_SAFE_CHUNKS:
            return RecordClass.SAFE
        return RecordClass.UNSAFE

    def reconstruct(self, data: bytes, records: List[ContainerRecord]) -> bytes:
        return build_riff(b"WAVE", ((r.identifier, r.payload) for r in records))

    def inspect(self, data: bytes, file_path: str = "<memory>") -> InspectionReport:
        report = InspectionReport(file_path=file_path, format_name=self.format_name, file_size=len(data))

        try:
            records = self.walk(data)
        except DecodeError as e:
            report.errors.append(e.to_dict())
            return report

        chunks = {r.identifier: r for r in reversed(records)}
        fmt = chunks.get(b"fmt ")
        if fmt is not None and fmt.byte_length >= 16:
            audio_format, channels, sample_rate, byte_rate, _, bits = struct.unpack_from("<HHIIHH", fmt.payload, 0)
            report.properties['audio_format'] = f"{WAV_AUDIO_FORMATS.get(audio_format, 'Unknown')} ({audio_format})"
            report.properties['channels'] = channels
            report.properties['sample_rate'] = f"{sample_rate} Hz"
            report.properties['byte_rate'] = f"{byte_rate} bytes/sec"
            report.properties['bits_per_sample'] = bits
            report.properties['bitrate'] = f"{byte_rate * 8 // 1000} kbps"

            audio = chunks.get(b"data")
            if audio is not None:
                if byte_rate > 0:
                    seconds = audio.byte_length / byte_rate
                    report.properties['duration'] = f"{int(seconds // 60)}:{seconds % 60:05.2f}"
                report.properties['audio_data_size'] = audio.byte_length

        for record in records:
            details = {}
            if record.identifier == b"LIST" and record.byte_length >= 4:
                list_type = bytes(record.payload[0:4])
                details['list_type'] = list_type.decode('latin-1')
                if list_type == b"INFO":
                    details.update(parse_info_list(record.payload[4:]))
            report.records.append(RecordInfo(
                identifier=record.name,
                size=record.byte_length,
                classification=self.classify(record).value,
                description=WAV_CHUNK_DESCRIPTIONS.get(record.name, "Unknown"),
                details=details,
            ))

        report.properties['chunks'] = len(records)
        report.properties['strippable_bytes'] = sum(
            8 + r.byte_length + (r.byte_length & 1) for r in records
            if self.classify(r) is RecordClass.UNSAFE)
        return report


def parse_info_list(data) -> dict:
    """Decode the sub-chunks of a LIST/INFO block into named text fields."""
    data = bytes(data)
    fields = {}
    pos = 0
    while pos + 8 <= len(data):
        field_id = data[pos:pos + 4].decode('latin-1')
        (size,) = struct.unpack_from("<I", data, pos + 4)
        end = min(pos + 8 + size, len(data))
        value = data[pos + 8:end].decode('utf-8', errors='replace').rstrip('\x00').strip()
        if value:
            fields[WAV_INFO_FIELDS.get(field_id, field_id)] = value
        pos += 8 + size + (size & 1)
    return fields
