"""
PNG chunk engine
"""

import io
import struct
import logging
from typing import List

from PIL import Image

from .base import BaseEngine, read_exif_tags
from ..config.constants import (
    PNG_SIGNATURE, PNG_SAFE_CHUNKS, PNG_CHUNK_DESCRIPTIONS, PNG_COLOR_TYPES
)
from ..core.exceptions import DecodeError
from ..core.models import ContainerRecord, InspectionReport, RecordClass, RecordInfo, StripPolicy


def is_critical(identifier: bytes) -> bool:
    """Critical chunks have bit 0x20 of the first type byte clear."""
    return not identifier[0] & 0x20


class PngEngine(BaseEngine):
    """Strip ancillary metadata chunks from PNG files."""

    format_name = "PNG"
    extensions = ('.png',)

    def iter_records(self, data: bytes):
        """Yield chunks in file order; raises DecodeError on a bad signature or overrun."""
        if len(data) < len(PNG_SIGNATURE) or data[:8] != PNG_SIGNATURE:
            raise DecodeError(self.format_name, "invalid PNG signature", 0)

        view = memoryview(data)
        pos = len(PNG_SIGNATURE)

        while pos + 12 <= len(data):
            (length,) = struct.unpack_from(">I", data, pos)
            identifier = bytes(view[pos + 4:pos + 8])
            payload_start = pos + 8
            crc_end = payload_start + length + 4
            if crc_end > len(data):
                raise DecodeError(self.format_name,
                                  f"chunk '{identifier.decode('latin-1')}' declares {length} bytes "
                                  f"past the end of the file", pos)

            yield ContainerRecord(identifier, view[payload_start:payload_start + length], pos,
                                  trailer=bytes(view[crc_end - 4:crc_end]))
            pos = crc_end

            if identifier == b"IEND":
                break

        if pos < len(data):
            logging.debug(f"PNG: ignoring {len(data) - pos} trailing bytes")

    def walk(self, data: bytes) -> List[ContainerRecord]:
        return list(self.iter_records(data))

    def classify(self, record: ContainerRecord) -> RecordClass:
        if is_critical(record.identifier):
            return RecordClass.ESSENTIAL
        if record.identifier in PNG_SAFE_CHUNKS:
            return RecordClass.SAFE
        return RecordClass.UNSAFE

    def keep(self, record, policy) -> bool:
        # Safe strips the same textual/time/EXIF subset as All for PNG
        if policy is StripPolicy.NONE:
            return True
        return self.classify(record) in (RecordClass.ESSENTIAL, RecordClass.SAFE)

    def reconstruct(self, data: bytes, records: List[ContainerRecord]) -> bytes:
        out = bytearray(PNG_SIGNATURE)
        for record in records:
            out += struct.pack(">I", record.byte_length)
            out += record.identifier
            out += record.payload
            out += record.trailer
        return bytes(out)

    def inspect(self, data: bytes, file_path: str = "<memory>") -> InspectionReport:
        report = InspectionReport(file_path=file_path, format_name=self.format_name, file_size=len(data))

        try:
            with Image.open(io.BytesIO(data)) as img:
                report.properties['dimensions'] = f"{img.width} x {img.height} pixels"
                report.properties['mode'] = img.mode
                report.properties['total_pixels'] = img.width * img.height
        except Exception as e:
            report.warnings.append(f"Could not decode PNG image: {e}")

        try:
            for record in self.iter_records(data):
                record_class = self.classify(record)
                report.records.append(RecordInfo(
                    identifier=record.name,
                    size=record.byte_length,
                    classification=record_class.value,
                    description=PNG_CHUNK_DESCRIPTIONS.get(record.name, "Unknown/Custom Chunk"),
                    details=self._describe(record),
                ))
        except DecodeError as e:
            report.errors.append(e.to_dict())

        critical = sum(1 for r in report.records if is_critical(r.identifier.encode('latin-1')))
        report.properties['chunks'] = len(report.records)
        report.properties['critical_chunks'] = critical
        report.properties['ancillary_chunks'] = len(report.records) - critical
        report.properties['strippable_bytes'] = sum(
            r.size + 12 for r in report.records if r.classification == RecordClass.UNSAFE.value)
        return report

    def _describe(self, record: ContainerRecord) -> dict:
        data = bytes(record.payload)
        name = record.name

        if name == "IHDR" and len(data) >= 13:
            width, height, bit_depth, color_type = struct.unpack_from(">IIBB", data, 0)
            return {
                'size': f"{width}x{height}",
                'bit_depth': bit_depth,
                'color_type': PNG_COLOR_TYPES.get(color_type, f"unknown ({color_type})"),
            }
        if name in ("tEXt", "zTXt", "iTXt"):
            keyword, sep, rest = data.partition(b"\x00")
            if not sep:
                return {}
            if name == "tEXt":
                value = rest.decode('latin-1')
                if len(value) > 60:
                    value = value[:60] + "..."
            else:
                value = "<compressed or binary>"
            return {keyword.decode('latin-1'): value}
        if name == "pHYs" and len(data) >= 9:
            x, y, unit = struct.unpack_from(">IIB", data, 0)
            return {'density': f"{x}x{y} pixels per {'meter' if unit == 1 else 'unit'}"}
        if name == "tIME" and len(data) >= 7:
            year, month, day, hour, minute, second = struct.unpack_from(">HBBBBB", data, 0)
            return {'modified': f"{year}-{month:02d}-{day:02d} {hour:02d}:{minute:02d}:{second:02d}"}
        if name == "gAMA" and len(data) >= 4:
            (gamma,) = struct.unpack_from(">I", data, 0)
            return {'gamma': f"{gamma / 100000.0:.5f}"}
        if name == "eXIf":
            return read_exif_tags(data)
        return {}
