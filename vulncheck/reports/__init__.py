"""
Finding presentation and report rendering.
"""

from .reporter import FindingReporter, EMPTY_FILE_PLACEHOLDER
from .generator import ReportGenerator, ReportFormat

__all__ = ['FindingReporter', 'EMPTY_FILE_PLACEHOLDER', 'ReportGenerator', 'ReportFormat']
