"""
Image format conversion between PNG, JPEG and WebP
"""

import logging
import concurrent.futures
from pathlib import Path
from typing import List, Optional

import tqdm

from ..codecs.image import convert_image
from ..config.constants import CONVERT_TARGETS, CONVERTIBLE_EXTENSIONS
from ..config.settings import ProcessingConfig
from ..core.exceptions import MetaPrepError, UnsupportedFileTypeError, ValidationError
from ..core.models import BatchReport, FileResult
from ..core.utils import create_backup, read_file, resolve_output, safe_path, write_file, format_size


def converted_path(file_path, target: str, input_base=None, output_base=None) -> Path:
    """Output path for a conversion: the resolved output with the target's extension."""
    _, extension = CONVERT_TARGETS[target]
    return resolve_output(Path(file_path), input_base, output_base).with_suffix(extension)


def convert_file(file_path: str, target: str, config: Optional[ProcessingConfig] = None,
                 input_base: Optional[str] = None, output_base: Optional[str] = None) -> FileResult:
    """
    Convert one image to the target format.

    Args:
        file_path: PNG, JPEG or WebP image
        target: 'png', 'jpg', 'jpeg' or 'webp'
        config: quality / no_lossy / backup options
        input_base: Directory the file was collected from
        output_base: Output file or directory; None writes beside the input

    Returns:
        FileResult; errors are captured rather than raised
    """
    if config is None:
        config = ProcessingConfig()

    path = safe_path(file_path)
    target = str(target).lower()
    result = FileResult(path=str(path))

    try:
        if target not in CONVERT_TARGETS:
            raise ValidationError("target", target, f"one of: {', '.join(CONVERT_TARGETS)}")
        if path.suffix.lower() not in CONVERTIBLE_EXTENSIONS:
            raise UnsupportedFileTypeError(str(path), path.suffix or "unknown", CONVERTIBLE_EXTENSIONS)

        output_path = converted_path(path, target, input_base, output_base)
        result.output_path = str(output_path)

        data = read_file(path)
        result.original_size = len(data)

        if config.dry_run:
            logging.info(f"[dry run] {path} -> {output_path}")
            result.skipped = True
            return result

        converted = convert_image(data, target, config.quality, lossless=config.no_lossy)
        result.processed_size = len(converted)

        if config.backup:
            create_backup(output_path)
        write_file(output_path, converted)
        logging.info(f"Converted {path.name} -> {output_path.name} "
                     f"({format_size(len(data))} -> {format_size(len(converted))})")
    except MetaPrepError as e:
        logging.error(f"Failed to convert {path}: {e.message}")
        result.error = e.to_dict()

    return result


def convert_files(file_paths: List[str], target: str, config: Optional[ProcessingConfig] = None,
                  input_base: Optional[str] = None, output_base: Optional[str] = None) -> BatchReport:
    """Convert several images in parallel."""
    if config is None:
        config = ProcessingConfig()

    report = BatchReport()
    max_workers = config.max_workers or min(32, len(file_paths) or 1)

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(convert_file, file_path, target, config, input_base, output_base)
            for file_path in file_paths
        ]
        iterator = concurrent.futures.as_completed(futures)
        if config.show_progress and len(file_paths) > 1:
            iterator = tqdm.tqdm(iterator, total=len(futures), desc="Converting", unit="file")
        for future in iterator:
            report.add(future.result())

    return report
