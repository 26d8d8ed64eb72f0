"""
Utilities package.
"""
from .excel_reporter import ExcelReporter

__all__ = ["ExcelReporter"]
