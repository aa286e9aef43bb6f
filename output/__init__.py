"""
Output module for writing daily update workbooks.
"""
from .excel_generator import generate_daily_updates_excel, save_daily_updates_excel

__all__ = ['generate_daily_updates_excel', 'save_daily_updates_excel']
