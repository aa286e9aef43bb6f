"""
Parsers module for reading daily update workbooks.
"""
from .base_parser import BaseParser, ValidationIssue
from .xlsx_parser import DailyUpdateXLSXParser, ImportFormatError

__all__ = ['BaseParser', 'ValidationIssue', 'DailyUpdateXLSXParser', 'ImportFormatError']
