"""
WebP RIFF engine
"""

import io
import struct
from typing import List

from PIL import Image

from .base import BaseEngine, read_exif_tags
from .riff import check_riff_header, walk_riff_chunks, build_riff
from ..config.constants import (
    WEBP_IMAGE_CHUNKS, WEBP_CONTROL_CHUNKS, WEBP_CHUNK_DESCRIPTIONS,
    VP8X_METADATA_FLAGS, VP8X_ALPHA_FLAG, VP8X_ANIMATION_FLAG
)
from ..core.exceptions import DecodeError
from ..core.models import ContainerRecord, InspectionReport, RecordClass, RecordInfo


class WebpEngine(BaseEngine):
    """Strip ICC/EXIF/XMP and unknown chunks from WebP files."""

    format_name = "WebP"
    extensions = ('.webp',)

    def walk(self, data: bytes) -> List[ContainerRecord]:
        check_riff_header(data, b"WEBP", self.format_name)
        return walk_riff_chunks(data, self.format_name)

    def classify(self, record: ContainerRecord) -> RecordClass:
        if record.identifier in WEBP_IMAGE_CHUNKS:
            return RecordClass.ESSENTIAL
        if record.identifier in WEBP_CONTROL_CHUNKS:
            return RecordClass.SAFE
        return RecordClass.UNSAFE

    def reconstruct(self, data: bytes, records: List[ContainerRecord]) -> bytes:
        retained = {record.identifier for record in records}
        chunks = []
        for record in records:
            payload = record.payload
            if record.identifier == b"VP8X" and len(payload) >= 1:
                payload = self._clear_missing_flags(payload, retained)
            chunks.append((record.identifier, payload))
        return build_riff(b"WEBP", chunks)

    @staticmethod
    def _clear_missing_flags(payload, retained) -> bytes:
        """Drop VP8X feature bits that advertise metadata chunks no longer present."""
        flags = payload[0]
        for identifier, bit in VP8X_METADATA_FLAGS.items():
            if identifier not in retained:
                flags &= ~bit
        if flags == payload[0]:
            return payload
        return bytes([flags]) + bytes(payload[1:])

    def inspect(self, data: bytes, file_path: str = "<memory>") -> InspectionReport:
        report = InspectionReport(file_path=file_path, format_name=self.format_name, file_size=len(data))

        try:
            with Image.open(io.BytesIO(data)) as img:
                report.properties['dimensions'] = f"{img.width} x {img.height} pixels"
                report.properties['total_pixels'] = img.width * img.height
        except Exception as e:
            report.warnings.append(f"Could not decode WebP image: {e}")

        try:
            records = self.walk(data)
        except DecodeError as e:
            report.errors.append(e.to_dict())
            return report

        (riff_size,) = struct.unpack_from("<I", data, 4)
        report.properties['riff_size'] = riff_size
        if riff_size != len(data) - 8:
            report.warnings.append(f"RIFF size field ({riff_size}) does not match file size - 8 ({len(data) - 8})")

        for record in records:
            report.records.append(RecordInfo(
                identifier=record.name,
                size=record.byte_length,
                classification=self.classify(record).value,
                description=WEBP_CHUNK_DESCRIPTIONS.get(record.name, "Unknown chunk"),
                details=self._describe(record),
            ))

        report.properties['chunks'] = len(records)
        report.properties['strippable_bytes'] = sum(
            8 + r.byte_length + (r.byte_length & 1) for r in records
            if self.classify(r) is RecordClass.UNSAFE)
        return report

    def _describe(self, record: ContainerRecord) -> dict:
        data = bytes(record.payload)
        name = record.name

        if name == "VP8X" and len(data) >= 10:
            flags = data[0]
            width = int.from_bytes(data[4:7], 'little') + 1
            height = int.from_bytes(data[7:10], 'little') + 1
            return {
                'canvas': f"{width}x{height}",
                'icc': bool(flags & VP8X_METADATA_FLAGS[b"ICCP"]),
                'alpha': bool(flags & VP8X_ALPHA_FLAG),
                'exif': bool(flags & VP8X_METADATA_FLAGS[b"EXIF"]),
                'xmp': bool(flags & VP8X_METADATA_FLAGS[b"XMP "]),
                'animation': bool(flags & VP8X_ANIMATION_FLAG),
            }
        if name == "VP8 " and len(data) >= 10:
            frame_tag = data[0] | (data[1] << 8) | (data[2] << 16)
            details = {
                'key_frame': (frame_tag & 1) == 0,
                'version': (frame_tag >> 1) & 7,
                'show_frame': bool((frame_tag >> 4) & 1),
            }
            if data[3:6] == b"\x9d\x01\x2a":
                width, height = struct.unpack_from("<HH", data, 6)
                details['dimensions'] = f"{width & 0x3fff}x{height & 0x3fff}"
            return details
        if name == "VP8L" and len(data) >= 5 and data[0] == 0x2f:
            (bits,) = struct.unpack_from("<I", data, 1)
            width = (bits & 0x3fff) + 1
            height = ((bits >> 14) & 0x3fff) + 1
            return {'dimensions': f"{width}x{height}"}
        if name == "EXIF":
            tags = read_exif_tags(data)
            return tags or {'note': f"Contains EXIF metadata ({len(data)} bytes)"}
        if name == "XMP ":
            return {'note': f"Contains XMP metadata ({len(data)} bytes)"}
        if name == "ICCP":
            return {'note': f"Contains ICC color profile ({len(data)} bytes)"}
        return {}
