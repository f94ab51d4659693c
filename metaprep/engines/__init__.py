"""
Container engines for metaprep
"""

from typing import Optional

from .base import BaseEngine
from .png import PngEngine
from .webp import WebpEngine
from .wav import WavEngine
from .id3 import Id3Engine

# Format key -> engine class
ENGINES = {
    'png': PngEngine,
    'webp': WebpEngine,
    'wav': WavEngine,
    'mp3': Id3Engine,
}


def get_engine(format_name: str) -> Optional[BaseEngine]:
    """Get a fresh engine for a format key ('png', 'webp', 'wav', 'mp3')."""
    engine_class = ENGINES.get(str(format_name).lower())
    if engine_class is None:
        return None
    return engine_class()


def get_engine_for_file(file_path: str) -> Optional[BaseEngine]:
    """
    Get the engine that handles a file, judged by its extension.

    Args:
        file_path: Path to the file

    Returns:
        Engine instance or None if no engine handles the file
    """
    for engine_class in ENGINES.values():
        if engine_class.can_handle(file_path):
            return engine_class()
    return None
