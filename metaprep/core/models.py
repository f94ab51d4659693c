"""
Data models for metaprep
"""

import threading
from enum import Enum
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any, Union

from .exceptions import ValidationError


class StripPolicy(Enum):
    """Which records survive reconstruction."""
    ALL = "all"    # keep only what the container needs to decode
    SAFE = "safe"  # additionally keep non-sensitive metadata
    NONE = "none"  # pass the input through untouched

    @classmethod
    def parse(cls, value: Union[str, "StripPolicy"]) -> "StripPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError("strip", value, "one of: all, safe, none")

    def __str__(self) -> str:
        return self.value


class RecordClass(Enum):
    """Sensitivity of a container record."""
    ESSENTIAL = "essential"
    SAFE = "safe"
    UNSAFE = "unsafe"


@dataclass(frozen=True)
class ContainerRecord:
    """One typed, length-prefixed unit within a container.

    While walking, ``payload`` is a memoryview into the source buffer; it is
    only copied when a reconstructor writes it to a new output buffer.
    """
    identifier: bytes
    payload: Any
    offset: int = 0
    # Format-specific trailer carried through unchanged (PNG CRC)
    trailer: bytes = b""
    # Decoded form when a tag model owns the record layout (mutagen ID3 frame)
    content: Any = None

    @property
    def byte_length(self) -> int:
        return len(self.payload)

    @property
    def name(self) -> str:
        return self.identifier.decode('latin-1')


@dataclass
class RecordInfo:
    """A display row describing one record for inspection output."""
    identifier: str
    size: int
    classification: str
    description: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class InspectionReport:
    """Read-only diagnostic dump of a container's structure."""
    file_path: str
    format_name: str
    file_size: int
    properties: Dict[str, Any] = field(default_factory=dict)
    records: List[RecordInfo] = field(default_factory=list)
    sections: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def count(self, classification: str) -> int:
        return sum(1 for r in self.records if r.classification == classification)

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return asdict(self)


@dataclass
class FileResult:
    """Outcome of processing a single file."""
    path: str
    output_path: Optional[str] = None
    original_size: int = 0
    processed_size: int = 0
    skipped: bool = False
    error: Optional[Dict[str, Any]] = None

    def savings_pct(self) -> float:
        if self.original_size == 0:
            return 0.0
        return (1.0 - self.processed_size / self.original_size) * 100.0

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        result = asdict(self)
        result['savings_pct'] = round(self.savings_pct(), 2)
        return result


class BatchReport:
    """Aggregate of per-file results; safe to append to from worker threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._results: List[FileResult] = []

    def add(self, result: FileResult) -> None:
        with self._lock:
            self._results.append(result)

    @property
    def results(self) -> List[FileResult]:
        with self._lock:
            return list(self._results)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def total_original(self) -> int:
        return sum(r.original_size for r in self.results if r.error is None)

    def total_processed(self) -> int:
        return sum(r.processed_size for r in self.results if r.error is None)

    def total_savings_pct(self) -> float:
        original = self.total_original()
        if original == 0:
            return 0.0
        return (1.0 - self.total_processed() / original) * 100.0

    def success_count(self) -> int:
        return sum(1 for r in self.results if r.error is None and not r.skipped)

    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    def error_count(self) -> int:
        return sum(1 for r in self.results if r.error is not None)

    def to_dict(self) -> Dict:
        return {
            'files': [r.to_dict() for r in sorted(self.results, key=lambda r: r.path)],
            'summary': {
                'processed': self.success_count(),
                'skipped': self.skipped_count(),
                'errors': self.error_count(),
                'total_original': self.total_original(),
                'total_processed': self.total_processed(),
                'total_savings_pct': round(self.total_savings_pct(), 2),
            }
        }
