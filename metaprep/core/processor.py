"""
Core file processing logic
"""

import os
import logging
import concurrent.futures
from pathlib import Path
from typing import Dict, List, Optional

import tqdm

from ..core.models import BatchReport, FileResult, StripPolicy
from ..core.utils import detect_format, resolve_output, create_backup, read_file, write_file, format_size
from ..core.exceptions import MetaPrepError, UnsupportedFileTypeError, handle_exception_gracefully
from ..config.constants import SUPPORTED_EXTENSIONS, STRIPPABLE_FORMATS
from ..config.settings import ProcessingConfig
from ..engines import get_engine
from ..codecs import image, video


def compress_data(data: bytes, file_format: str, config: ProcessingConfig) -> bytes:
    """
    Run the compression pipeline for one format over an in-memory buffer.

    Args:
        data: File contents
        file_format: Format key ('png', 'webp', 'wav', 'mp3', 'mp4')
        config: Processing options; ``config.strip`` is handed to every engine call

    Returns:
        Processed file contents
    """
    if file_format == 'png':
        if not config.no_lossy:
            data = image.quantize_png(data, config.quality, config.speed)
        data = get_engine('png').strip(data, config.strip)
        return image.recompress_png(data)

    if file_format == 'webp':
        data = image.encode_webp(data, config.quality, lossless=config.no_lossy,
                                 keep_metadata=config.strip is StripPolicy.NONE)
        return get_engine('webp').strip(data, config.strip)

    if file_format in ('wav', 'mp3'):
        return get_engine(file_format).strip(data, config.strip)

    if file_format == 'mp4':
        return video.transcode_video(data, config)

    raise UnsupportedFileTypeError("<memory>", str(file_format), list(SUPPORTED_EXTENSIONS))


def strip_data(data: bytes, file_format: str, config: ProcessingConfig) -> bytes:
    """Metadata stripping only: the container engine, without any re-encoding."""
    if file_format not in STRIPPABLE_FORMATS:
        raise UnsupportedFileTypeError("<memory>", str(file_format), STRIPPABLE_FORMATS)
    return get_engine(file_format).strip(data, config.strip)


@handle_exception_gracefully
def _process(file_path: Path, config: ProcessingConfig, output_path: Path, transform) -> FileResult:
    file_format = detect_format(file_path)
    if file_format is None:
        raise UnsupportedFileTypeError(str(file_path), file_path.suffix or "unknown",
                                       [ext for exts in SUPPORTED_EXTENSIONS.values() for ext in exts])

    data = read_file(file_path)
    result = FileResult(path=str(file_path), output_path=str(output_path), original_size=len(data))

    processed = transform(data, file_format, config)
    result.processed_size = len(processed)

    # Re-encoding can grow a file; stripped output is always written
    if transform is compress_data and len(processed) >= len(data):
        logging.debug(f"Skipping {file_path} - processed ({len(processed)}) >= original ({len(data)})")
        result.skipped = True
        result.processed_size = len(data)
        return result

    if config.backup:
        create_backup(output_path)

    write_file(output_path, processed)
    logging.info(f"{file_path.name}: {format_size(len(data))} -> {format_size(len(processed))} "
                 f"({result.savings_pct():.1f}% saved)")
    return result


def process_file(file_path: str, config: Optional[ProcessingConfig] = None,
                 input_base: Optional[str] = None, output_base: Optional[str] = None,
                 transform=compress_data) -> FileResult:
    """
    Process a single file and write the result.

    Args:
        file_path: Path to file to process
        config: Processing options
        input_base: Directory the file was collected from (for mirroring structure)
        output_base: Output file or directory; None overwrites in place
        transform: Pipeline applied to the file contents (compress_data or strip_data)

    Returns:
        FileResult describing sizes, skip state or the captured error
    """
    if config is None:
        config = ProcessingConfig()

    file_path = Path(os.path.abspath(os.path.normpath(str(file_path))))
    output_path = resolve_output(file_path, input_base, output_base)

    try:
        return _process(file_path, config, output_path, transform)
    except MetaPrepError as e:
        logging.error(f"Failed to process {file_path}: {e.message}")
        return FileResult(path=str(file_path), output_path=str(output_path), error=e.to_dict())


def plan_outputs(file_paths: List[str], input_base: Optional[str] = None,
                 output_base: Optional[str] = None) -> List[Dict[str, str]]:
    """Input -> output pairs a run would write, for dry runs."""
    return [
        {'input': str(path), 'output': str(resolve_output(Path(path), input_base, output_base))}
        for path in file_paths
    ]


def process_files(file_paths: List[str], config: Optional[ProcessingConfig] = None,
                  input_base: Optional[str] = None, output_base: Optional[str] = None,
                  transform=compress_data) -> BatchReport:
    """
    Process multiple files in parallel using a thread pool.

    Args:
        file_paths: List of file paths to process
        config: Processing options shared by every worker
        input_base: Directory the files were collected from
        output_base: Output file or directory; None overwrites in place
        transform: Pipeline applied to each file's contents

    Returns:
        BatchReport with one FileResult per input file
    """
    if config is None:
        config = ProcessingConfig()

    report = BatchReport()

    if config.dry_run:
        for entry in plan_outputs(file_paths, input_base, output_base):
            logging.info(f"[dry run] {entry['input']} -> {entry['output']}")
            report.add(FileResult(path=entry['input'], output_path=entry['output'], skipped=True))
        return report

    # Determine number of worker threads
    max_workers = config.max_workers or min(32, (os.cpu_count() or 1) + 4)

    # Process files in parallel
    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_file = {
            executor.submit(process_file, file_path, config, input_base, output_base, transform): file_path
            for file_path in file_paths
        }

        if config.show_progress and len(file_paths) > 1:
            # Display progress bar for multiple files
            with tqdm.tqdm(total=len(file_paths), desc="Processing files", unit="file") as pbar:
                for future in concurrent.futures.as_completed(future_to_file):
                    report.add(future.result())
                    pbar.update(1)
        else:
            # Without progress bar
            for future in concurrent.futures.as_completed(future_to_file):
                report.add(future.result())

    return report
