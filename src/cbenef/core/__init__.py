"""
Core package - Document parsing and per-state extraction.
"""
from .pdf_text import text_of
from .parsers import PARSERS, StateParser, SCParser, ESParser, PRParser, RJParser
from .extractor import StateExtractor
from .factory import ExtractorFactory

__all__ = [
    "text_of",
    "PARSERS",
    "StateParser",
    "SCParser",
    "ESParser",
    "PRParser",
    "RJParser",
    "StateExtractor",
    "ExtractorFactory",
]
