"""
Unit tests for the WebP RIFF engine
"""

import sys
import struct
import unittest
from pathlib import Path

# Add the project root to Python path for development testing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from metaprep.core.exceptions import DecodeError
from metaprep.core.models import RecordClass, StripPolicy
from metaprep.engines.webp import WebpEngine
from tests.media_fixtures import build_riff, riff_chunk, vp8x_payload, VP8_PAYLOAD

# ICC | ALPHA | EXIF | XMP
ALL_FLAGS = 0x20 | 0x10 | 0x08 | 0x04


class TestWebpStrip(unittest.TestCase):
    """Test WebP chunk filtering and reconstruction."""

    def setUp(self):
        self.engine = WebpEngine()
        self.data = build_riff(b"WEBP", [
            (b"VP8X", vp8x_payload(ALL_FLAGS, 16, 16)),
            (b"ICCP", b"icc-profile"),
            (b"ALPH", b"\x00\x01\x02"),
            (b"VP8 ", VP8_PAYLOAD),
            (b"EXIF", b"II*\x00exif"),
            (b"XMP ", b"<x:xmpmeta/>"),
        ])

    def test_none_returns_input(self):
        self.assertIs(self.engine.strip(self.data, StripPolicy.NONE), self.data)

    def test_all_keeps_image_chunks(self):
        output = self.engine.strip(self.data, StripPolicy.ALL)
        self.assertEqual([r.name for r in self.engine.walk(output)], ["ALPH", "VP8 "])

    def test_safe_keeps_container_chunks(self):
        output = self.engine.strip(self.data, StripPolicy.SAFE)
        self.assertEqual([r.name for r in self.engine.walk(output)], ["VP8X", "ALPH", "VP8 "])

    def test_size_field_matches_output(self):
        for policy in (StripPolicy.ALL, StripPolicy.SAFE):
            output = self.engine.strip(self.data, policy)
            (riff_size,) = struct.unpack_from("<I", output, 4)
            self.assertEqual(riff_size, len(output) - 8)
            self.assertEqual(output[8:12], b"WEBP")

    def test_image_data_preserved(self):
        output = self.engine.strip(self.data, StripPolicy.ALL)
        vp8 = [r for r in self.engine.walk(output) if r.name == "VP8 "][0]
        self.assertEqual(bytes(vp8.payload), VP8_PAYLOAD)
        # odd payload is followed by a zero pad byte
        self.assertIn(riff_chunk(b"VP8 ", VP8_PAYLOAD), output)
        self.assertEqual(len(output) % 2, 0)

    def test_vp8x_metadata_flags_cleared(self):
        output = self.engine.strip(self.data, StripPolicy.SAFE)
        vp8x = self.engine.walk(output)[0]
        self.assertEqual(vp8x.payload[0], 0x10)
        self.assertEqual(bytes(vp8x.payload[1:]), vp8x_payload(ALL_FLAGS, 16, 16)[1:])

    def test_strip_is_idempotent(self):
        for policy in (StripPolicy.ALL, StripPolicy.SAFE):
            once = self.engine.strip(self.data, policy)
            self.assertEqual(self.engine.strip(once, policy), once)


class TestWebpErrors(unittest.TestCase):
    """Test malformed input handling."""

    def setUp(self):
        self.engine = WebpEngine()

    def test_too_short(self):
        with self.assertRaises(DecodeError):
            self.engine.strip(b"RIFF\x00\x00", StripPolicy.ALL)

    def test_wrong_form_type(self):
        with self.assertRaises(DecodeError):
            self.engine.strip(build_riff(b"WAVE", [(b"fmt ", b"\x00" * 16)]), StripPolicy.ALL)

    def test_chunk_overrun(self):
        data = build_riff(b"WEBP", [(b"VP8 ", VP8_PAYLOAD)])
        truncated = data[:-6]
        with self.assertRaises(DecodeError):
            self.engine.strip(truncated, StripPolicy.ALL)

    def test_classification(self):
        records = {r.name: r for r in self.engine.walk(build_riff(b"WEBP", [
            (b"VP8L", b"\x2f\x00\x00\x00\x00"), (b"ANIM", b"\x00" * 6), (b"XMP ", b"x"), (b"ABCD", b"?"),
        ]))}
        self.assertEqual(self.engine.classify(records["VP8L"]), RecordClass.ESSENTIAL)
        self.assertEqual(self.engine.classify(records["ANIM"]), RecordClass.SAFE)
        self.assertEqual(self.engine.classify(records["XMP "]), RecordClass.UNSAFE)
        self.assertEqual(self.engine.classify(records["ABCD"]), RecordClass.UNSAFE)


class TestWebpInspect(unittest.TestCase):
    """Test diagnostic inspection."""

    def test_inspect_report(self):
        data = build_riff(b"WEBP", [(b"VP8X", vp8x_payload(0x08, 16, 16)), (b"VP8 ", VP8_PAYLOAD),
                                    (b"EXIF", b"not really exif")])
        report = WebpEngine().inspect(data, "image.webp")

        self.assertEqual(report.properties['riff_size'], len(data) - 8)
        rows = {r.identifier: r for r in report.records}
        self.assertEqual(rows["VP8X"].details['canvas'], "16x16")
        self.assertTrue(rows["VP8X"].details['exif'])
        self.assertEqual(rows["VP8 "].details['dimensions'], "16x16")
        self.assertTrue(rows["VP8 "].details['key_frame'])
        self.assertEqual(report.properties['strippable_bytes'], 8 + 15 + 1)

    def test_size_mismatch_warning(self):
        data = build_riff(b"WEBP", [(b"VP8 ", VP8_PAYLOAD)], size=999)
        report = WebpEngine().inspect(data, "image.webp")
        self.assertTrue(any("does not match" in w for w in report.warnings))


if __name__ == '__main__':
    unittest.main()
