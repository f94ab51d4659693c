"""
High-level operations built on the engines and codecs
"""

from .inspect import inspect_file, inspect_files
from .convert import convert_file, convert_files
