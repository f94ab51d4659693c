"""
metaprep - Media compression and metadata stripping tool
"""

__version__ = "1.0.0"

from .core.models import StripPolicy, RecordClass, ContainerRecord, InspectionReport, FileResult, BatchReport
from .engines import get_engine, get_engine_for_file
from .core.processor import compress_data, strip_data, process_file, process_files
from .main import main

__all__ = [
    'main', 'StripPolicy', 'RecordClass', 'ContainerRecord', 'InspectionReport', 'FileResult',
    'BatchReport', 'get_engine', 'get_engine_for_file', 'compress_data', 'strip_data',
    'process_file', 'process_files',
]
