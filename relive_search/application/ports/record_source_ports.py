# relive_search/application/ports/record_source_ports.py
import abc
from typing import List

from relive_search.domain.models import AnalysisRecord, TranscriptRecord


class AnalysisSourcePort(abc.ABC):
    """
    Abstract port for the in-memory cache of conversation analyses
    produced by the AI analysis pipeline.
    """

    @abc.abstractmethod
    async def get_analyses(self) -> List[AnalysisRecord]:
        raise NotImplementedError


class TranscriptSourcePort(abc.ABC):
    """Abstract port for transcription sessions kept outside the relational store."""

    @abc.abstractmethod
    async def get_transcription_sessions(self) -> List[TranscriptRecord]:
        """Returns all known sessions, newest first. Callers filter by status."""
        raise NotImplementedError
