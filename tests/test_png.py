"""
Unit tests for the PNG chunk engine
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
from metaprep.engines.png import PngEngine, is_critical
from tests.media_fixtures import build_png, png_chunk


class TestPngWalker(unittest.TestCase):
    """Test chunk walking."""

    def setUp(self):
        self.engine = PngEngine()

    def test_walk_yields_chunks_in_order(self):
        data = build_png(before_idat=[(b"tEXt", b"Author\x00Jane")])
        names = [r.name for r in self.engine.walk(data)]
        self.assertEqual(names, ["IHDR", "tEXt", "IDAT", "IEND"])

    def test_records_carry_crc(self):
        data = build_png()
        ihdr = self.engine.walk(data)[0]
        self.assertEqual(ihdr.trailer, data[29:33])
        self.assertEqual(ihdr.byte_length, 13)
        self.assertEqual(ihdr.offset, 8)

    def test_bad_signature(self):
        with self.assertRaises(DecodeError):
            self.engine.walk(b"GIF89a" + b"\x00" * 20)

    def test_short_input(self):
        with self.assertRaises(DecodeError):
            self.engine.walk(b"\x89PNG")

    def test_overrun_raises(self):
        data = build_png()
        # IHDR claims far more bytes than the file holds
        broken = data[:8] + struct.pack(">I", 10000) + data[12:]
        with self.assertRaises(DecodeError):
            self.engine.walk(broken)

    def test_trailing_bytes_after_iend_ignored(self):
        data = build_png() + b"garbage after the end"
        self.assertEqual(self.engine.walk(data)[-1].name, "IEND")
        self.assertEqual(self.engine.strip(data, StripPolicy.ALL), build_png())


class TestPngClassification(unittest.TestCase):
    """Test chunk classification."""

    def setUp(self):
        self.engine = PngEngine()
        self.records = {r.name: r for r in self.engine.walk(build_png(
            before_idat=[(b"gAMA", struct.pack(">I", 45455)), (b"iCCP", b"icc\x00\x00data"),
                         (b"pHYs", struct.pack(">IIB", 2835, 2835, 1))],
            after_idat=[(b"tIME", struct.pack(">HBBBBB", 2024, 1, 2, 3, 4, 5)),
                        (b"prVt", b"private")],
        ))}

    def test_critical_bit(self):
        self.assertTrue(is_critical(b"IHDR"))
        self.assertTrue(is_critical(b"IDAT"))
        self.assertFalse(is_critical(b"tEXt"))

    def test_classes(self):
        self.assertEqual(self.engine.classify(self.records["IHDR"]), RecordClass.ESSENTIAL)
        self.assertEqual(self.engine.classify(self.records["gAMA"]), RecordClass.SAFE)
        self.assertEqual(self.engine.classify(self.records["pHYs"]), RecordClass.SAFE)
        self.assertEqual(self.engine.classify(self.records["iCCP"]), RecordClass.UNSAFE)
        self.assertEqual(self.engine.classify(self.records["tIME"]), RecordClass.UNSAFE)
        self.assertEqual(self.engine.classify(self.records["prVt"]), RecordClass.UNSAFE)


class TestPngStrip(unittest.TestCase):
    """Test policy-driven stripping."""

    def setUp(self):
        self.engine = PngEngine()
        self.data = build_png(before_idat=[(b"tEXt", b"Software\x00Editor 1.0")])

    def test_none_returns_input(self):
        self.assertIs(self.engine.strip(self.data, StripPolicy.NONE), self.data)

    def test_all_keeps_only_critical(self):
        output = self.engine.strip(self.data, StripPolicy.ALL)
        self.assertEqual([r.name for r in self.engine.walk(output)], ["IHDR", "IDAT", "IEND"])
        self.assertEqual(output, build_png())

    def test_safe_matches_all(self):
        self.assertEqual(self.engine.strip(self.data, StripPolicy.SAFE),
                         self.engine.strip(self.data, StripPolicy.ALL))

    def test_safe_ancillary_survive(self):
        gama = (b"gAMA", struct.pack(">I", 45455))
        data = build_png(before_idat=[gama, (b"zTXt", b"Comment\x00\x00x\x9c")])
        output = self.engine.strip(data, StripPolicy.ALL)
        self.assertEqual(output, build_png(before_idat=[gama]))

    def test_policy_by_name(self):
        self.assertEqual(self.engine.strip(self.data, "all"), build_png())

    def test_strip_is_idempotent(self):
        once = self.engine.strip(self.data, StripPolicy.ALL)
        self.assertEqual(self.engine.strip(once, StripPolicy.ALL), once)

    def test_reconstruct_preserves_payload_and_crc(self):
        chunk = png_chunk(b"IDAT", b"\x01\x02\x03")
        data = b"\x89PNG\r\n\x1a\n" + png_chunk(b"IHDR", b"\x00" * 13) + chunk + png_chunk(b"IEND", b"")
        output = self.engine.strip(data, StripPolicy.ALL)
        self.assertIn(chunk, output)


class TestPngInspect(unittest.TestCase):
    """Test diagnostic inspection."""

    def test_inspect_report(self):
        data = build_png(before_idat=[(b"tEXt", b"Author\x00Jane Doe")],
                         after_idat=[(b"tIME", struct.pack(">HBBBBB", 2024, 5, 6, 7, 8, 9))])
        report = PngEngine().inspect(data, "image.png")

        self.assertEqual(report.format_name, "PNG")
        self.assertEqual(report.properties['dimensions'], "2 x 2 pixels")
        self.assertEqual(report.properties['chunks'], 5)
        self.assertEqual(report.properties['critical_chunks'], 3)

        rows = {r.identifier: r for r in report.records}
        self.assertEqual(rows["tEXt"].details, {'Author': "Jane Doe"})
        self.assertEqual(rows["tIME"].details['modified'], "2024-05-06 07:08:09")
        self.assertEqual(rows["IHDR"].details['size'], "2x2")
        self.assertEqual(rows["tEXt"].classification, "unsafe")

    def test_inspect_invalid_reports_error(self):
        report = PngEngine().inspect(b"not a png at all", "bad.png")
        self.assertTrue(report.errors)
        self.assertTrue(report.warnings)


if __name__ == '__main__':
    unittest.main()
