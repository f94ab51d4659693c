"""
Report generators for metaprep
"""

from typing import Optional

from .base import BaseReporter
from .text import TextReporter
from .json import JSONReporter

REPORTERS = {
    'text': TextReporter,
    'json': JSONReporter,
}


def get_reporter(format_name: str) -> Optional[BaseReporter]:
    """Get a reporter for an output format ('text' or 'json')."""
    reporter_class = REPORTERS.get(str(format_name).lower())
    if reporter_class is None:
        return None
    return reporter_class()
