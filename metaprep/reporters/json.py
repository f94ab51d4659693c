"""
JSON reporter
"""

import json
from typing import List

from .base import BaseReporter
from ..core.models import BatchReport, InspectionReport


class JSONReporter(BaseReporter):
    """Machine-readable output."""

    def generate_report(self, reports: List[InspectionReport]) -> str:
        return json.dumps({'files': [r.to_dict() for r in reports]}, indent=2, default=str)

    def generate_batch_report(self, batch: BatchReport) -> str:
        return json.dumps(batch.to_dict(), indent=2, default=str)
