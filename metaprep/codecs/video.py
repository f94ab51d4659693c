"""
ffmpeg-backed video adapter: MP4 transcoding, frame extraction and probing.
"""

import os
import json
import struct
import logging
import tempfile
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from ..config.constants import FFMPEG_PRESETS, FFMPEG_FALLBACK_PRESET
from ..core.exceptions import DependencyError, EncodeError, OutputError
from ..core.models import StripPolicy

FFMPEG_INSTALL = "brew install ffmpeg (macOS) or apt install ffmpeg (Linux)"


def _tool_available(name: str) -> bool:
    try:
        subprocess.run([name, '-version'], stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=True)
        return True
    except (subprocess.SubprocessError, FileNotFoundError):
        return False


def is_ffmpeg_available() -> bool:
    """Check whether an ffmpeg binary can be executed."""
    return _tool_available('ffmpeg')


def quality_to_crf(quality: int) -> int:
    """Map quality 0-100 onto an x264 CRF between 18 (best) and 35 (smallest)."""
    crf = int((100 - quality) * 0.33 + 18)
    return max(18, min(35, crf))


def speed_to_preset(speed: int) -> str:
    return FFMPEG_PRESETS.get(speed, FFMPEG_FALLBACK_PRESET)


def build_transcode_command(input_path: str, output_path: str, quality: int = 80, speed: int = 3,
                            lossless: bool = False, strip: StripPolicy = StripPolicy.ALL) -> List[str]:
    """
    Build the ffmpeg argument list for an MP4 compression run.

    Lossless runs copy both streams and only rewrite the container; otherwise
    video is re-encoded with libx264 and audio with AAC at 128 kbps.
    """
    cmd = ['ffmpeg', '-i', str(input_path), '-y']

    if lossless:
        cmd += ['-c:v', 'copy', '-c:a', 'copy']
    else:
        cmd += [
            '-c:v', 'libx264',
            '-crf', str(quality_to_crf(quality)),
            '-preset', speed_to_preset(speed),
            '-c:a', 'aac',
            '-b:a', '128k',
        ]

    if StripPolicy.parse(strip) is not StripPolicy.NONE:
        cmd += ['-map_metadata', '-1']

    cmd += ['-movflags', '+faststart', str(output_path)]
    return cmd


def _run_ffmpeg(cmd: List[str], stage: str) -> None:
    logging.debug(f"Running: {' '.join(cmd)}")
    try:
        subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=True)
    except FileNotFoundError as e:
        raise DependencyError("ffmpeg", stage, FFMPEG_INSTALL) from e
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode('utf-8', errors='replace') if e.stderr else ""
        logging.error(f"ffmpeg failed: {stderr}")
        raise EncodeError("MP4", stage, RuntimeError(stderr.strip() or f"exit status {e.returncode}"))


def transcode_video(data: bytes, config) -> bytes:
    """
    Compress an MP4 buffer through ffmpeg.

    Returns the input unchanged (with a warning) when ffmpeg is not installed.
    """
    if not is_ffmpeg_available():
        logging.warning("ffmpeg not found - MP4 compression requires ffmpeg to be installed")
        logging.warning(f"Install: {FFMPEG_INSTALL}")
        return data

    with tempfile.TemporaryDirectory() as temp_dir:
        input_path = os.path.join(temp_dir, "input.mp4")
        output_path = os.path.join(temp_dir, "output.mp4")
        with open(input_path, 'wb') as f:
            f.write(data)

        cmd = build_transcode_command(input_path, output_path, config.quality, config.speed,
                                      lossless=config.no_lossy, strip=config.strip)
        _run_ffmpeg(cmd, "transcode")

        with open(output_path, 'rb') as f:
            return f.read()


def extract_frames(input_path, output_dir, fps: float = 1.0) -> int:
    """
    Extract video frames as PNG images into '<output_dir>/<stem>_frames/'.

    Args:
        input_path: Video file
        output_dir: Parent directory for the frames directory
        fps: Frames per second to sample; 0 extracts every frame

    Returns:
        Number of PNG frames written
    """
    if not is_ffmpeg_available():
        raise DependencyError("ffmpeg", "frame extraction", FFMPEG_INSTALL)

    input_path = Path(input_path)
    frames_dir = Path(output_dir) / f"{input_path.stem or 'video'}_frames"
    try:
        frames_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(str(frames_dir), e)

    cmd = ['ffmpeg', '-i', str(input_path), '-y']
    if fps > 0:
        cmd += ['-vf', f"fps={fps}"]
    cmd.append(str(frames_dir / "frame_%04d.png"))
    _run_ffmpeg(cmd, "frame extraction")

    count = sum(1 for p in frames_dir.iterdir() if p.suffix == ".png")
    logging.info(f"Extracted {count} frames to {frames_dir}")
    return count


def walk_boxes(data: bytes) -> List[Dict]:
    """List the top-level MP4 boxes as {'type', 'offset', 'size'} entries."""
    boxes = []
    pos = 0
    while pos + 8 <= len(data):
        size, box_type = struct.unpack_from(">I4s", data, pos)
        if size == 1 and pos + 16 <= len(data):
            (size,) = struct.unpack_from(">Q", data, pos + 8)
        elif size == 0:
            size = len(data) - pos
        if size < 8:
            break
        boxes.append({'type': box_type.decode('latin-1'), 'offset': pos, 'size': size})
        pos += size
    return boxes


def is_fast_start(data: bytes) -> bool:
    """True when the moov box precedes mdat, so playback can start before download ends."""
    order = [b['type'] for b in walk_boxes(data) if b['type'] in ('moov', 'mdat')]
    return bool(order) and order[0] == 'moov'


def probe_video(file_path) -> Optional[Dict]:
    """Stream and format information from ffprobe, or None when ffprobe is unavailable."""
    if not _tool_available('ffprobe'):
        return None

    cmd = ['ffprobe', '-v', 'quiet', '-print_format', 'json', '-show_format', '-show_streams', str(file_path)]
    try:
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=True)
        return json.loads(result.stdout)
    except (subprocess.SubprocessError, ValueError) as e:
        logging.warning(f"ffprobe failed for {file_path}: {e}")
        return None
