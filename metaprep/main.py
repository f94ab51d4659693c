#!/usr/bin/env python3
"""
metaprep - Media compression and metadata stripping tool
--------------------------------------------------------
Shrinks PNG, WebP, WAV, MP3 and MP4 files and removes the metadata they
carry (authoring tool chunks, EXIF, ID3 private frames, embedded paths)
while leaving the media itself intact.
"""

import argparse
import sys
import logging
import textwrap
from typing import List, Optional

from colorama import Fore, Style
import colorama

from .config.constants import VERSION, SUPPORTED_EXTENSIONS, STRIPPABLE_FORMATS, CONVERTIBLE_EXTENSIONS
from .config.settings import ProcessingConfig
from .core.exceptions import MetaPrepError, ValidationError, format_error_for_cli
from .core.processor import compress_data, strip_data, process_files, plan_outputs
from .core.utils import collect_files, detect_format, safe_path
from .codecs.video import extract_frames
from .operations.convert import convert_files
from .operations.inspect import inspect_files
from .reporters import get_reporter


def configure_logging(log_file: Optional[str], verbose: bool = False) -> None:
    """Configure logging system with appropriate levels and handlers."""
    # Create a formatter
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Configure console handler with color
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Custom formatter for console with colors
    class ColoredFormatter(logging.Formatter):
        FORMATS = {
            logging.DEBUG: Fore.CYAN + "%(message)s" + Style.RESET_ALL,
            logging.INFO: "%(message)s",
            logging.WARNING: Fore.YELLOW + "%(message)s" + Style.RESET_ALL,
            logging.ERROR: Fore.RED + "%(message)s" + Style.RESET_ALL,
            logging.CRITICAL: Fore.RED + Style.BRIGHT + "%(message)s" + Style.RESET_ALL
        }

        def format(self, record):
            log_fmt = self.FORMATS.get(record.levelno)
            formatter = logging.Formatter(log_fmt)
            return formatter.format(record)

    console_handler.setFormatter(ColoredFormatter())

    # Get the root logger and add handlers
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)  # Allow all logs to be processed

    # Remove existing handlers to avoid duplicates on reconfiguration
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)  # Always log details to file
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Only add console handler if not in quiet mode
    if verbose:
        logger.addHandler(console_handler)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="metaprep",
        description=f"metaprep v{VERSION} - Media compression and metadata stripping tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(f'''
        Examples:
          metaprep compress photo.png
          metaprep compress ./assets ./dist -r --quality 70 --strip safe
          metaprep strip song.mp3 clean.mp3
          metaprep convert ./images ./webp -t webp
          metaprep inspect recording.wav --format json
          metaprep extract clip.mp4 ./frames --fps 2

        Supported file types:
          {', '.join(ext for exts in SUPPORTED_EXTENSIONS.values() for ext in exts)}
        ''')
    )

    # Global options
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output')
    parser.add_argument('--quiet', action='store_true', help='Suppress non-essential output')
    parser.add_argument('--log-file', default='metaprep.log', help='Log file path (empty to disable)')
    parser.add_argument('--version', action='version', version=f'metaprep v{VERSION}')

    # Create subparsers
    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    def add_batch_options(sub, strip=True):
        sub.add_argument('input', help='Input file or directory')
        sub.add_argument('output', nargs='?', help='Output file or directory (default: overwrite in place)')
        sub.add_argument('--recursive', '-r', action='store_true', help='Process directories recursively')
        sub.add_argument('--backup', action='store_true', help='Keep a .bak copy of files that get overwritten')
        sub.add_argument('--dry-run', action='store_true', help='Show what would be written without writing')
        sub.add_argument('--threads', type=int, default=0, help='Number of worker threads (default: auto)')
        sub.add_argument('--format', choices=['text', 'json'], default='text',
                         help='Summary output format (default: text)')
        if strip:
            sub.add_argument('--strip', choices=['all', 'safe', 'none'], default='all',
                             help='Metadata to remove: all, safe (keep non-sensitive tags) or none (default: all)')

    # 'compress' command
    compress_parser = subparsers.add_parser('compress', help='Compress files and strip metadata')
    add_batch_options(compress_parser)
    compress_parser.add_argument('--quality', '-q', type=int, default=80, help='Quality 0-100 (default: 80)')
    compress_parser.add_argument('--speed', '-s', type=int, default=3,
                                 help='Speed 1 (slow, best) to 10 (fast) (default: 3)')
    compress_parser.add_argument('--no-lossy', action='store_true', help='Only lossless optimisation')

    # 'strip' command
    strip_parser = subparsers.add_parser('strip', help='Strip metadata without re-encoding')
    add_batch_options(strip_parser)

    # 'convert' command
    convert_parser = subparsers.add_parser('convert', help='Convert images between PNG, JPEG and WebP')
    add_batch_options(convert_parser, strip=False)
    convert_parser.add_argument('--to', '-t', required=True, choices=['png', 'jpg', 'jpeg', 'webp'],
                                help='Target format')
    convert_parser.add_argument('--quality', '-q', type=int, default=80, help='Quality 0-100 (default: 80)')
    convert_parser.add_argument('--no-lossy', action='store_true', help='Lossless WebP output')

    # 'inspect' command
    inspect_parser = subparsers.add_parser('inspect', help='Show container structure and metadata')
    inspect_parser.add_argument('input', help='File or directory to inspect')
    inspect_parser.add_argument('--recursive', '-r', action='store_true', help='Inspect directories recursively')
    inspect_parser.add_argument('--format', choices=['text', 'json'], default='text',
                                help='Output format (default: text)')
    inspect_parser.add_argument('--output', '-o', help='Output file (default: stdout)')

    # 'extract' command
    extract_parser = subparsers.add_parser('extract', help='Extract video frames as PNG images')
    extract_parser.add_argument('input', help='MP4 video file')
    extract_parser.add_argument('output', help='Directory for the extracted frames')
    extract_parser.add_argument('--fps', '-f', type=float, default=1.0,
                                help='Frames per second to extract, 0 for every frame (default: 1.0)')

    return parser


def write_output(text: str, output_file: Optional[str] = None) -> None:
    """Write a report to a file or stdout."""
    if output_file:
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(text)
        print(f"Report written to {output_file}")
    else:
        print(text)


def _input_base(input_path: str) -> Optional[str]:
    path = safe_path(input_path)
    return str(path) if path.is_dir() else None


def _config_from_args(args, **overrides) -> ProcessingConfig:
    options = {
        'quality': getattr(args, 'quality', None),
        'speed': getattr(args, 'speed', None),
        'no_lossy': getattr(args, 'no_lossy', None),
        'strip': getattr(args, 'strip', None),
        'dry_run': args.dry_run,
        'backup': args.backup,
        'recursive': args.recursive,
        'max_workers': args.threads if args.threads > 0 else None,
        'show_progress': not args.quiet,
    }
    options.update(overrides)
    return ProcessingConfig.from_options(options)


def _report_batch(batch, args) -> int:
    reporter = get_reporter(args.format)
    if not args.quiet or args.format == 'json':
        print(reporter.generate_batch_report(batch))
    return 1 if batch.error_count() else 0


def run_batch(args, formats: List[str], transform) -> int:
    """Shared driver for the compress and strip commands."""
    config = _config_from_args(args)
    files = collect_files(args.input, recursive=config.recursive, formats=formats)
    if not files:
        logging.error("No files found to process.")
        return 1

    if not args.quiet and args.format == 'text':
        print(f"Processing {len(files)} files...")

    input_base = _input_base(args.input)
    if config.dry_run:
        for entry in plan_outputs(files, input_base, args.output):
            print(f"  {entry['input']} -> {entry['output']}")
        return 0

    batch = process_files([str(f) for f in files], config, input_base, args.output, transform=transform)
    return _report_batch(batch, args)


def run_compress(args) -> int:
    return run_batch(args, list(SUPPORTED_EXTENSIONS), compress_data)


def run_strip(args) -> int:
    return run_batch(args, STRIPPABLE_FORMATS, strip_data)


def run_convert(args) -> int:
    config = _config_from_args(args)
    files = collect_files(args.input, recursive=config.recursive, extensions=CONVERTIBLE_EXTENSIONS)
    if not files:
        logging.error("No images found to convert.")
        return 1

    batch = convert_files([str(f) for f in files], args.to, config, _input_base(args.input), args.output)
    if config.dry_run:
        for result in batch.results:
            print(f"  {result.path} -> {result.output_path}")
        return 1 if batch.error_count() else 0
    return _report_batch(batch, args)


def run_inspect(args) -> int:
    files = collect_files(args.input, recursive=args.recursive)
    if not files:
        logging.error("No supported files found to inspect.")
        return 1

    reports = inspect_files([str(f) for f in files])
    reporter = get_reporter(args.format)
    write_output(reporter.generate_report(reports), args.output)
    return 1 if any(r.errors for r in reports) else 0


def run_extract(args) -> int:
    if detect_format(args.input) != 'mp4':
        raise ValidationError("input", args.input, "an MP4 video file (.mp4, .m4v)")
    if args.fps < 0:
        raise ValidationError("fps", args.fps, "fps >= 0")

    input_path = safe_path(args.input)
    if not input_path.is_file():
        logging.error(f"Error: '{input_path}' is not a valid file.")
        return 1

    if not args.quiet:
        print(f"Extracting frames at {args.fps} fps...")
    count = extract_frames(input_path, safe_path(args.output), args.fps)
    print(f"✓ Extracted {count} frames")
    return 0


COMMANDS = {
    'compress': run_compress,
    'strip': run_strip,
    'convert': run_convert,
    'inspect': run_inspect,
    'extract': run_extract,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Run the metaprep CLI tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    colorama.init()
    configure_logging(args.log_file, args.verbose and not args.quiet)

    # Show banner unless quiet mode or machine-readable output
    if not args.quiet and getattr(args, 'format', 'text') == 'text' and args.command:
        print(f"{Fore.CYAN}metaprep v{VERSION}{Style.RESET_ALL} - Media compression and metadata stripping tool")
        print(f"{'=' * 60}")

    handler = COMMANDS.get(args.command)
    if handler is None:
        # No command specified, show help
        parser.print_help()
        return 0

    try:
        return handler(args)
    except MetaPrepError as e:
        print(format_error_for_cli(e, args.verbose), file=sys.stderr)
        return 1


# --- Main entry point ---
if __name__ == "__main__":
    try:
        exit_code = main()
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\nUnexpected error: {e}")
        logging.error(f"Unhandled exception: {e}", exc_info=True)
        sys.exit(1)
