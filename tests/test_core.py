"""
Tests for metaprep core functionality
"""

import os
import sys
import unittest
import tempfile
from pathlib import Path

# Add the project root to Python path for development testing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from metaprep.core.models import BatchReport, ContainerRecord, FileResult, InspectionReport, RecordInfo, StripPolicy
from metaprep.core.utils import (
    collect_files, create_backup, decode_synchsafe, detect_format, encode_synchsafe,
    format_size, read_file, resolve_output, safe_path, write_file
)
from metaprep.core.exceptions import (
    ConfigurationError, DecodeError, FileNotFoundError as MPFileNotFoundError, MetaPrepError,
    ValidationError, format_error_for_cli, format_error_for_json, handle_exception_gracefully
)
from metaprep.config.settings import ProcessingConfig


class TestCoreModels(unittest.TestCase):
    """Test core data models."""

    def test_strip_policy_parse(self):
        self.assertIs(StripPolicy.parse("ALL"), StripPolicy.ALL)
        self.assertIs(StripPolicy.parse(" safe "), StripPolicy.SAFE)
        self.assertIs(StripPolicy.parse(StripPolicy.NONE), StripPolicy.NONE)
        self.assertEqual(str(StripPolicy.SAFE), "safe")
        with self.assertRaises(ValidationError):
            StripPolicy.parse("some")

    def test_container_record(self):
        data = b"xxxxPAYLOAD"
        record = ContainerRecord(b"tEXt", memoryview(data)[4:], offset=4)
        self.assertEqual(record.name, "tEXt")
        self.assertEqual(record.byte_length, 7)
        self.assertEqual(bytes(record.payload), b"PAYLOAD")

    def test_file_result(self):
        result = FileResult(path="/in/a.png", original_size=1000, processed_size=250)
        self.assertAlmostEqual(result.savings_pct(), 75.0)
        self.assertEqual(result.to_dict()['savings_pct'], 75.0)
        self.assertEqual(FileResult(path="empty").savings_pct(), 0.0)

    def test_batch_report(self):
        report = BatchReport()
        report.add(FileResult(path="b.wav", original_size=200, processed_size=100))
        report.add(FileResult(path="a.png", original_size=100, processed_size=100, skipped=True))
        report.add(FileResult(path="c.mp3", error={'message': "boom"}))

        self.assertEqual(len(report), 3)
        self.assertEqual(report.success_count(), 1)
        self.assertEqual(report.skipped_count(), 1)
        self.assertEqual(report.error_count(), 1)
        self.assertEqual(report.total_original(), 300)
        self.assertAlmostEqual(report.total_savings_pct(), 100 / 3)

        report_dict = report.to_dict()
        self.assertEqual([f['path'] for f in report_dict['files']], ["a.png", "b.wav", "c.mp3"])
        self.assertEqual(report_dict['summary']['errors'], 1)

    def test_inspection_report(self):
        report = InspectionReport(file_path="/test/a.png", format_name="PNG", file_size=10)
        report.records.append(RecordInfo("tEXt", 12, "unsafe", "Text"))
        report.records.append(RecordInfo("gAMA", 4, "safe", "Gamma"))
        self.assertEqual(report.count("unsafe"), 1)

        report_dict = report.to_dict()
        self.assertEqual(report_dict["file_path"], "/test/a.png")
        self.assertEqual(len(report_dict["records"]), 2)


class TestCoreUtils(unittest.TestCase):
    """Test core utility functions."""

    def setUp(self):
        """Set up test files."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        for name in ("a.png", "b.WAV", "notes.txt", "sub/c.mp3", "sub/deep/d.webp", "sub/e.mp4"):
            path = self.root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"data")

    def tearDown(self):
        """Clean up test files."""
        self.temp_dir.cleanup()

    def test_detect_format(self):
        self.assertEqual(detect_format("x.PNG"), "png")
        self.assertEqual(detect_format("clip.m4v"), "mp4")
        self.assertEqual(detect_format("song.mp3"), "mp3")
        self.assertIsNone(detect_format("doc.pdf"))

    def test_collect_flat(self):
        names = [p.name for p in collect_files(self.root)]
        self.assertEqual(names, ["a.png", "b.WAV"])

    def test_collect_recursive(self):
        names = sorted(p.name for p in collect_files(self.root, recursive=True))
        self.assertEqual(names, ["a.png", "b.WAV", "c.mp3", "d.webp", "e.mp4"])

    def test_collect_filters(self):
        files = collect_files(self.root, recursive=True, formats=["mp3", "webp"])
        self.assertEqual(sorted(p.name for p in files), ["c.mp3", "d.webp"])
        files = collect_files(self.root, recursive=True, exclude="*.mp4", include="[a-d]*")
        self.assertEqual(sorted(p.name for p in files), ["a.png", "b.WAV", "c.mp3", "d.webp"])
        files = collect_files(self.root, recursive=True, extensions=[".txt"])
        self.assertEqual([p.name for p in files], ["notes.txt"])

    def test_collect_single_file_and_missing(self):
        self.assertEqual(collect_files(self.root / "notes.txt"), [safe_path(self.root / "notes.txt")])
        with self.assertRaises(MPFileNotFoundError):
            collect_files(self.root / "missing")

    def test_resolve_output(self):
        src = self.root / "sub" / "c.mp3"
        self.assertEqual(resolve_output(src), src)
        self.assertEqual(resolve_output(src, self.root, "/out"), Path("/out/sub/c.mp3"))
        self.assertEqual(resolve_output(src, src, "/out/clean.mp3"), Path("/out/clean.mp3"))
        self.assertEqual(resolve_output(src, None, "/out"), Path("/out/c.mp3"))

    def test_read_write_backup(self):
        target = self.root / "new" / "dir" / "out.bin"
        write_file(target, b"\x01\x02")
        self.assertEqual(read_file(target), b"\x01\x02")

        backup = create_backup(target)
        self.assertEqual(backup.name, "out.bin.bak")
        self.assertEqual(backup.read_bytes(), b"\x01\x02")
        self.assertIsNone(create_backup(self.root / "absent.bin"))

        with self.assertRaises(MPFileNotFoundError):
            read_file(self.root / "absent.bin")

    def test_format_size(self):
        self.assertEqual(format_size(512), "512 B")
        self.assertEqual(format_size(2048), "2.0 KB")
        self.assertEqual(format_size(3 * 1024 * 1024), "3.00 MB")


class TestSynchsafe(unittest.TestCase):
    """Test the ID3v2 synchsafe size codec."""

    def test_known_values(self):
        self.assertEqual(decode_synchsafe(b"\x00\x00\x00\x64"), 100)
        self.assertEqual(decode_synchsafe(b"\x00\x00\x02\x01"), 257)
        self.assertEqual(encode_synchsafe(257), b"\x00\x00\x02\x01")
        self.assertEqual(encode_synchsafe((1 << 28) - 1), b"\x7f\x7f\x7f\x7f")

    def test_round_trip_boundaries(self):
        for value in (0, 1, 127, 128, 16383, 16384, 2097151, 2097152, (1 << 28) - 1):
            self.assertEqual(decode_synchsafe(encode_synchsafe(value)), value)

    def test_high_bits_are_ignored(self):
        self.assertEqual(decode_synchsafe(b"\x00\x80\x00\x00"), 0)
        self.assertEqual(decode_synchsafe(b"\x80\x80\x81\xe4"), 228)

    def test_errors(self):
        with self.assertRaises(ValidationError):
            decode_synchsafe(b"\x00\x00")
        with self.assertRaises(ValidationError):
            encode_synchsafe(1 << 28)
        with self.assertRaises(ValidationError):
            encode_synchsafe(-1)


class TestExceptions(unittest.TestCase):
    """Test error hierarchy and formatting."""

    def test_decode_error_message(self):
        error = DecodeError("PNG", "bad signature", 0)
        self.assertIsInstance(error, MetaPrepError)
        self.assertIn("Invalid PNG structure", error.message)
        self.assertEqual(error.details, "at byte offset 0")
        self.assertEqual(error.to_dict()['error_type'], "DecodeError")

    def test_cli_formatting(self):
        error = ValidationError("quality", 101, "integer between 0 and 100")
        text = format_error_for_cli(error)
        self.assertIn("Invalid value for 'quality'", text)
        self.assertIn("Suggestions", text)
        self.assertIn("unexpected error", format_error_for_cli(RuntimeError("x")))

    def test_json_formatting(self):
        self.assertEqual(format_error_for_json(RuntimeError("x"))['error_type'], "UnexpectedError")
        self.assertEqual(format_error_for_json(DecodeError("WAV", "short"))['error_type'], "DecodeError")

    def test_handle_exception_gracefully(self):
        @handle_exception_gracefully
        def open_missing(path):
            raise FileNotFoundError(path)

        @handle_exception_gracefully
        def explode(path):
            raise KeyError("boom")

        with self.assertRaises(MPFileNotFoundError):
            open_missing("/nope")
        with self.assertRaises(MetaPrepError) as ctx:
            explode("/nope")
        self.assertIn("explode", ctx.exception.message)


class TestProcessingConfig(unittest.TestCase):
    """Test option validation."""

    def test_defaults(self):
        config = ProcessingConfig()
        self.assertEqual(config.quality, 80)
        self.assertIs(config.strip, StripPolicy.ALL)

    def test_strip_from_string(self):
        self.assertIs(ProcessingConfig(strip="safe").strip, StripPolicy.SAFE)

    def test_invalid_values(self):
        with self.assertRaises(ValidationError):
            ProcessingConfig(quality=120)
        with self.assertRaises(ValidationError):
            ProcessingConfig(speed=0)
        with self.assertRaises(ValidationError):
            ProcessingConfig(fps=-1)
        with self.assertRaises(ValidationError):
            ProcessingConfig(max_workers=0)

    def test_from_options(self):
        config = ProcessingConfig.from_options({'quality': 60, 'strip': "none", 'max_workers': None})
        self.assertEqual(config.quality, 60)
        self.assertIs(config.strip, StripPolicy.NONE)
        self.assertIsNone(config.max_workers)
        with self.assertRaises(ConfigurationError):
            ProcessingConfig.from_options({'colour': True})


if __name__ == '__main__':
    unittest.main()
