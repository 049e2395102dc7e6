# relive_search/infrastructure/cache/__init__.py
from .record_cache import AnalysisCache, TranscriptSessionCache

__all__ = ["AnalysisCache", "TranscriptSessionCache"]
