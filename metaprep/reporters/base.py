"""
Base class for report generators
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ..core.models import BatchReport, InspectionReport


class BaseReporter(ABC):
    """Render inspection reports and batch results as text."""

    @abstractmethod
    def generate_report(self, reports: List[InspectionReport]) -> str:
        """Render one or more inspection reports."""
        pass

    @abstractmethod
    def generate_batch_report(self, batch: BatchReport) -> str:
        """Render the per-file outcome of a compress/strip/convert run."""
        pass

    def format_details(self, details: Dict[str, Any]) -> str:
        """Flatten a record's detail dictionary into one display string."""
        parts = []
        for key, value in details.items():
            if isinstance(value, (list, tuple)):
                value = ", ".join(str(item) for item in value)
            elif isinstance(value, bool):
                value = "yes" if value else "no"
            parts.append(f"{key}: {value}")
        return "; ".join(parts)
