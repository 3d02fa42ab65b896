"""
Shared FastAPI dependencies. Tests swap them through ``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import Callable

from fastapi import Depends

from ..ai_agent.providers import AnalysisProvider, get_provider
from ..github.api import GitHubAPI
from ..scanner.pipeline import ScanPipeline
from ..scanner.session import SessionStore
from .config import settings
from .database import SessionLocal
from .ledger import CreditLedger

_store = SessionStore(max_sessions=settings.MAX_LIVE_SESSIONS)


def get_store() -> SessionStore:
    return _store


@lru_cache()
def get_ledger() -> CreditLedger:
    return CreditLedger(SessionLocal, signup_credits=settings.SIGNUP_CREDITS)


@lru_cache()
def get_analyzer() -> AnalysisProvider:
    return get_provider(settings)


def get_client_factory() -> Callable[[str], GitHubAPI]:
    def factory(token: str) -> GitHubAPI:
        return GitHubAPI(
            token,
            base_url=settings.GITHUB_API_URL,
            max_retries=settings.GITHUB_MAX_RETRIES,
            timeout=settings.GITHUB_TIMEOUT
        )
    return factory


def get_pipeline(
    ledger: CreditLedger = Depends(get_ledger),
    analyzer=Depends(get_analyzer)
) -> ScanPipeline:
    return ScanPipeline(
        ledger,
        analyzer,
        pacing_seconds=settings.SCAN_PACING_SECONDS,
        max_file_bytes=settings.MAX_FILE_SIZE_BYTES,
        credit_cost=settings.SCAN_CREDIT_COST
    )
