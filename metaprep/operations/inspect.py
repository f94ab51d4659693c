"""
Read-only inspection of container structure and embedded metadata
"""

import logging
from pathlib import Path
from typing import List

from ..codecs import video
from ..config.constants import SUPPORTED_EXTENSIONS
from ..core.exceptions import MetaPrepError, UnsupportedFileTypeError
from ..core.models import InspectionReport
from ..core.utils import detect_format, read_file, safe_path
from ..engines import get_engine


def inspect_mp4(data: bytes, file_path: str) -> InspectionReport:
    """Top-level box layout plus ffprobe stream facts when ffprobe is installed."""
    report = InspectionReport(file_path=file_path, format_name="MP4", file_size=len(data))

    boxes = video.walk_boxes(data)
    report.properties['boxes'] = " ".join(b['type'] for b in boxes)
    report.properties['fast_start'] = video.is_fast_start(data)

    probe = video.probe_video(file_path)
    if probe is None:
        report.warnings.append("ffprobe not available - stream details omitted")
        return report

    fmt = probe.get('format', {})
    report.properties['container'] = fmt.get('format_name', 'unknown')
    if 'duration' in fmt:
        report.properties['duration'] = f"{float(fmt['duration']):.2f} s"
    if 'bit_rate' in fmt:
        report.properties['bitrate'] = f"{int(fmt['bit_rate']) // 1000} kbps"
    if fmt.get('tags'):
        report.sections['Metadata'] = dict(fmt['tags'])

    for index, stream in enumerate(probe.get('streams', [])):
        details = {'codec': stream.get('codec_name', 'unknown')}
        if stream.get('codec_type') == 'video':
            details['resolution'] = f"{stream.get('width')}x{stream.get('height')}"
            details['frame_rate'] = stream.get('avg_frame_rate')
        elif stream.get('codec_type') == 'audio':
            details['sample_rate'] = stream.get('sample_rate')
            details['channels'] = stream.get('channels')
        report.sections[f"Stream #{index} ({stream.get('codec_type', 'unknown')})"] = details

    return report


def inspect_file(file_path: str) -> InspectionReport:
    """
    Inspect a single file.

    Args:
        file_path: Path to a PNG, WebP, WAV, MP3 or MP4 file

    Returns:
        InspectionReport with properties, per-record rows and warnings
    """
    path = safe_path(file_path)
    file_format = detect_format(path)
    if file_format is None:
        raise UnsupportedFileTypeError(str(path), path.suffix or "unknown",
                                       [ext for exts in SUPPORTED_EXTENSIONS.values() for ext in exts])

    data = read_file(path)
    logging.debug(f"Inspecting {path} as {file_format} ({len(data)} bytes)")

    if file_format == 'mp4':
        return inspect_mp4(data, str(path))
    return get_engine(file_format).inspect(data, str(path))


def inspect_files(file_paths: List[str]) -> List[InspectionReport]:
    """Inspect several files; a failing file yields a report carrying the error."""
    reports = []
    for file_path in file_paths:
        try:
            reports.append(inspect_file(file_path))
        except MetaPrepError as e:
            logging.error(f"Could not inspect {file_path}: {e.message}")
            report = InspectionReport(file_path=str(file_path), format_name=detect_format(file_path) or "unknown",
                                      file_size=Path(file_path).stat().st_size if Path(file_path).is_file() else 0)
            report.errors.append(e.to_dict())
            reports.append(report)
    return reports
