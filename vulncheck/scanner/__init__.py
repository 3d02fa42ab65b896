"""
Scan orchestration: sessions, the sequential runner and the pipeline.
"""

from .session import ScanSession, ScanStatus, SessionStore
from .runner import ScanRunner
from .pipeline import ScanPipeline

__all__ = ['ScanSession', 'ScanStatus', 'SessionStore', 'ScanRunner', 'ScanPipeline']
