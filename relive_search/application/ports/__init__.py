# relive_search/application/ports/__init__.py
from .repository_ports import ConversationStorePort
from .record_source_ports import AnalysisSourcePort, TranscriptSourcePort

__all__ = [
    "ConversationStorePort",
    "AnalysisSourcePort",
    "TranscriptSourcePort",
]
