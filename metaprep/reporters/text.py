"""
Plain-text reporter with colour and tables
"""

import os
import textwrap
from typing import List

from colorama import Fore, Style
from tabulate import tabulate

from .base import BaseReporter
from ..core.models import BatchReport, InspectionReport, RecordClass
from ..core.utils import format_size

CLASS_COLORS = {
    RecordClass.ESSENTIAL.value: Fore.GREEN,
    RecordClass.SAFE.value: Fore.CYAN,
    RecordClass.UNSAFE.value: Fore.RED,
}

DETAIL_WIDTH = 60


class TextReporter(BaseReporter):
    """Console output: property lists, tabulated records and a batch summary."""

    def __init__(self, color: bool = True):
        self.color = color

    def _paint(self, text: str, color: str) -> str:
        if not self.color or not color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    def generate_report(self, reports: List[InspectionReport]) -> str:
        if not reports:
            return "No files to report."

        output_parts = []
        for i, report in enumerate(reports):
            if i > 0:
                output_parts.append("=" * 70)  # Separator between files

            file_name = os.path.basename(report.file_path)
            output_parts.append(self._paint(f"File: {file_name}", Fore.CYAN))
            output_parts.append(f"Path: {report.file_path}")
            output_parts.append(f"Format: {report.format_name}")
            output_parts.append(f"Size: {report.file_size:,} bytes ({format_size(report.file_size)})")

            if report.properties:
                output_parts.append("\nProperties:")
                for key, value in report.properties.items():
                    output_parts.append(f"  {key.replace('_', ' ').capitalize()}: {value}")

            if report.records:
                rows = []
                for record in report.records:
                    details = self.format_details(record.details)
                    rows.append([
                        record.identifier,
                        f"{record.size:,}",
                        self._paint(record.classification.upper(), CLASS_COLORS.get(record.classification, "")),
                        record.description,
                        textwrap.fill(details, DETAIL_WIDTH) if details else "",
                    ])
                output_parts.append("\nRecords:")
                output_parts.append(tabulate(rows, headers=["ID", "Size", "Class", "Description", "Details"],
                                             tablefmt="simple"))
                output_parts.append(
                    f"\nSummary: {len(report.records)} records "
                    f"({report.count(RecordClass.ESSENTIAL.value)} essential, "
                    f"{report.count(RecordClass.SAFE.value)} safe, "
                    f"{report.count(RecordClass.UNSAFE.value)} unsafe)")

            for name, fields in report.sections.items():
                output_parts.append(f"\n{name}:")
                for key, value in fields.items():
                    output_parts.append(f"  {key}: {value}")

            for warning in report.warnings:
                output_parts.append(self._paint(f"⚠ {warning}", Fore.YELLOW))
            for error in report.errors:
                output_parts.append(self._paint(f"❌ {error.get('message')}", Fore.RED))
                if error.get('details'):
                    output_parts.append(f"   {error['details']}")

        return "\n".join(output_parts)

    def generate_batch_report(self, batch: BatchReport) -> str:
        results = sorted(batch.results, key=lambda r: r.path)
        if not results:
            return "No files to report."

        rows = []
        for result in results:
            name = os.path.basename(result.path)
            if result.error is not None:
                status = self._paint("ERROR", Fore.RED)
                rows.append([name, "-", "-", "-", status])
            elif result.skipped:
                rows.append([name, format_size(result.original_size), "-", "-", self._paint("skipped", Fore.YELLOW)])
            else:
                rows.append([
                    name,
                    format_size(result.original_size),
                    format_size(result.processed_size),
                    f"{result.savings_pct():.1f}%",
                    self._paint("ok", Fore.GREEN),
                ])

        output_parts = [tabulate(rows, headers=["File", "Original", "Processed", "Saved", "Status"],
                                 tablefmt="simple")]

        output_parts.append(
            f"\nTotal: {format_size(batch.total_original())} -> {format_size(batch.total_processed())} "
            f"({batch.total_savings_pct():.1f}% saved)")
        output_parts.append(
            f"Processed: {batch.success_count()}, skipped: {batch.skipped_count()}, errors: {batch.error_count()}")

        for result in results:
            if result.error is not None:
                output_parts.append(self._paint(f"❌ {result.path}: {result.error.get('message')}", Fore.RED))

        return "\n".join(output_parts)
