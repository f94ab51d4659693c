"""
Shared RIFF chunk grammar used by the WebP and WAV engines.

chunk = 4-byte type | u32_le size | size bytes payload | zero pad byte if size is odd
"""

import struct
import logging
from typing import Iterable, List

from ..core.exceptions import DecodeError
from ..core.models import ContainerRecord

RIFF_HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8


def check_riff_header(data: bytes, form_type: bytes, format_name: str) -> None:
    """Verify 'RIFF' <size> <form_type> at the start of the buffer."""
    if len(data) < RIFF_HEADER_SIZE:
        raise DecodeError(format_name, "file too small for a RIFF header")
    if data[0:4] != b"RIFF" or data[8:12] != form_type:
        raise DecodeError(format_name, f"missing RIFF/{form_type.decode('ascii').strip()} signature", 0)


def walk_riff_chunks(data: bytes, format_name: str, start: int = RIFF_HEADER_SIZE,
                     tolerate_truncation: bool = False) -> List[ContainerRecord]:
    """
    Scan RIFF chunks from ``start`` to the end of the buffer.

    A chunk whose declared size runs past the buffer end raises DecodeError,
    unless ``tolerate_truncation`` is set: then its payload is clamped to the
    bytes actually available and walking stops.
    """
    view = memoryview(data)
    records = []
    pos = start

    while pos + CHUNK_HEADER_SIZE <= len(data):
        identifier = bytes(view[pos:pos + 4])
        (size,) = struct.unpack_from("<I", data, pos + 4)
        payload_start = pos + CHUNK_HEADER_SIZE
        chunk_end = payload_start + size

        if chunk_end > len(data):
            if not tolerate_truncation:
                raise DecodeError(format_name,
                                  f"chunk '{identifier.decode('latin-1')}' declares {size} bytes "
                                  f"but only {len(data) - payload_start} remain", pos)
            logging.warning(f"{format_name}: truncated final chunk '{identifier.decode('latin-1')}', "
                            f"keeping {len(data) - payload_start} of {size} bytes")
            records.append(ContainerRecord(identifier, view[payload_start:], pos))
            break

        records.append(ContainerRecord(identifier, view[payload_start:chunk_end], pos))

        # word alignment
        pos = chunk_end + (size & 1)

    return records


def emit_riff_chunk(out: bytearray, identifier: bytes, payload) -> int:
    """Append one chunk with a fresh size field and pad byte; return bytes written."""
    size = len(payload)
    out += identifier
    out += struct.pack("<I", size)
    out += payload
    if size & 1:
        out.append(0)
    return CHUNK_HEADER_SIZE + size + (size & 1)


def build_riff(form_type: bytes, chunks: Iterable) -> bytes:
    """
    Assemble a RIFF container from (identifier, payload) pairs.

    The size field is patched last with ``len(output) - 8``: the form type
    counts towards the RIFF size, the 8-byte RIFF header itself does not.
    """
    out = bytearray(b"RIFF")
    out += b"\x00\x00\x00\x00"
    out += form_type
    for identifier, payload in chunks:
        emit_riff_chunk(out, identifier, payload)
    struct.pack_into("<I", out, 4, len(out) - 8)
    return bytes(out)
