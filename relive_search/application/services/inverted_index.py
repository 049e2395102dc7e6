# relive_search/application/services/inverted_index.py
import structlog
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Set, Tuple

from relive_search.application.services.text_analysis import tokenize
from relive_search.domain.models import DocumentType, SearchableDocument

log = structlog.get_logger(__name__)

_EMPTY_POSTINGS: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class IndexSnapshot:
    """
    Read-only view of one index build: the document map plus token postings.
    A rebuild produces a new snapshot; an existing one is never modified.
    """
    documents: Mapping[str, SearchableDocument] = field(default_factory=lambda: MappingProxyType({}))
    postings: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: MappingProxyType({}))
    built_at: Optional[datetime] = None
    failed_sources: Tuple[str, ...] = ()

    @property
    def document_count(self) -> int:
        return len(self.documents)

    @property
    def is_empty(self) -> bool:
        return not self.documents

    def postings_for(self, token: str) -> FrozenSet[str]:
        return self.postings.get(token, _EMPTY_POSTINGS)

    def vocabulary(self) -> Iterable[str]:
        return self.postings.keys()

    def get(self, doc_id: str) -> Optional[SearchableDocument]:
        return self.documents.get(doc_id)

    def counts_by_type(self) -> Dict[DocumentType, int]:
        counts = Counter(doc.doc_type for doc in self.documents.values())
        return {doc_type: counts.get(doc_type, 0) for doc_type in DocumentType}


def build_index_snapshot(
    documents: Iterable[SearchableDocument],
    failed_sources: Iterable[str] = (),
) -> IndexSnapshot:
    """Tokenizes every document and builds the token -> doc id postings from scratch."""
    build_log = log.bind(action="build_index_snapshot")
    document_map: Dict[str, SearchableDocument] = {}
    postings: Dict[str, Set[str]] = defaultdict(set)

    for document in documents:
        if document.doc_id in document_map:
            build_log.warning("Duplicate document id skipped.", doc_id=document.doc_id)
            continue
        document_map[document.doc_id] = document
        for token in tokenize(document.composite_text):
            postings[token].add(document.doc_id)

    snapshot = IndexSnapshot(
        documents=MappingProxyType(document_map),
        postings=MappingProxyType({token: frozenset(ids) for token, ids in postings.items()}),
        built_at=datetime.now(timezone.utc),
        failed_sources=tuple(failed_sources),
    )
    build_log.info(
        f"Index snapshot built with {snapshot.document_count} documents.",
        tokens=len(snapshot.postings),
        failed_sources=list(snapshot.failed_sources),
    )
    return snapshot
