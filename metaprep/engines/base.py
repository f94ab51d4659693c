"""
Base class for container engines
"""

import io
import os
import logging
from abc import ABC, abstractmethod
from typing import Dict, List

import exifread

from ..core.models import ContainerRecord, InspectionReport, RecordClass, StripPolicy


def read_exif_tags(payload) -> Dict[str, str]:
    """Decode a raw TIFF/EXIF block (as embedded in PNG eXIf or WebP EXIF) into tag strings."""
    raw = bytes(payload)
    if raw.startswith(b"Exif\x00\x00"):
        raw = raw[6:]
    try:
        tags = exifread.process_file(io.BytesIO(raw), details=False)
    except Exception as e:
        logging.warning(f"Could not decode EXIF block: {e}")
        return {}
    return {key: str(value) for key, value in tags.items()}


class BaseEngine(ABC):
    """Walk, classify and rebuild the records of one container format."""

    format_name = "unknown"
    extensions = ()

    @classmethod
    def can_handle(cls, file_path: str) -> bool:
        """Check whether this engine handles the given file, by extension."""
        ext = os.path.splitext(str(file_path))[1].lower()
        return ext in cls.extensions

    @abstractmethod
    def walk(self, data: bytes) -> List[ContainerRecord]:
        """Parse the container into its ordered record sequence."""
        pass

    @abstractmethod
    def classify(self, record: ContainerRecord) -> RecordClass:
        """Tag a record as essential, safe or unsafe metadata."""
        pass

    @abstractmethod
    def reconstruct(self, data: bytes, records: List[ContainerRecord]) -> bytes:
        """Build a new container from the retained records."""
        pass

    @abstractmethod
    def inspect(self, data: bytes, file_path: str = "<memory>") -> InspectionReport:
        """Produce a read-only diagnostic report of the container."""
        pass

    def keep(self, record: ContainerRecord, policy: StripPolicy) -> bool:
        """Decide whether a record survives under a policy."""
        if policy is StripPolicy.NONE:
            return True
        record_class = self.classify(record)
        if policy is StripPolicy.SAFE:
            return record_class in (RecordClass.ESSENTIAL, RecordClass.SAFE)
        return record_class is RecordClass.ESSENTIAL

    def strip(self, data: bytes, policy: StripPolicy) -> bytes:
        """Return the container with only the records the policy permits."""
        policy = StripPolicy.parse(policy)
        if policy is StripPolicy.NONE:
            return data

        records = self.walk(data)
        retained = []
        for record in records:
            if self.keep(record, policy):
                retained.append(record)
            else:
                logging.debug(f"Stripping {self.format_name} chunk: {record.name} ({record.byte_length} bytes)")

        output = self.reconstruct(data, retained)
        removed = len(records) - len(retained)
        if removed:
            logging.info(f"{self.format_name}: removed {removed} of {len(records)} chunks "
                         f"({len(data) - len(output)} bytes) under policy '{policy}'")
        return output
