# relive_search/dependencies.py
from typing import Optional
import structlog

from relive_search.core.config import settings
from relive_search.application.ports import (
    AnalysisSourcePort,
    ConversationStorePort,
    TranscriptSourcePort,
)
from relive_search.application.services.document_collector import DocumentCollector
from relive_search.application.services.query_engine import QueryEngine
from relive_search.application.services.search_history import SearchHistoryTracker
from relive_search.application.services.structured_search import StructuredSearchAdapter
from relive_search.application.use_cases.hybrid_search_use_case import HybridSearchUseCase
from relive_search.domain.exceptions import ServiceNotReadyError
from relive_search.infrastructure.cache.record_cache import AnalysisCache, TranscriptSessionCache
from relive_search.infrastructure.persistence import postgres_connector
from relive_search.infrastructure.persistence.postgres_repositories import PostgresConversationStore

log = structlog.get_logger(__name__)

_store_instance: Optional[ConversationStorePort] = None
_analysis_cache_instance: Optional[AnalysisCache] = None
_transcript_cache_instance: Optional[TranscriptSessionCache] = None
_search_use_case_instance: Optional[HybridSearchUseCase] = None
_service_ready_flag: bool = False


def build_search_use_case(
    store: ConversationStorePort,
    analysis_source: Optional[AnalysisSourcePort] = None,
    transcript_source: Optional[TranscriptSourcePort] = None,
) -> HybridSearchUseCase:
    """Wires a HybridSearchUseCase over the given sources using the loaded settings."""
    collector = DocumentCollector(
        store,
        analysis_source=analysis_source,
        transcript_source=transcript_source,
        conversation_limit=settings.CONVERSATION_BATCH_LIMIT,
        commitment_limit=settings.COMMITMENT_BATCH_LIMIT,
    )
    query_engine = QueryEngine(
        fuzzy_max_distance=settings.FUZZY_MAX_DISTANCE,
        snippet_length=settings.SNIPPET_LENGTH,
    )
    structured_search = StructuredSearchAdapter(
        store,
        default_min_relevance=settings.STRUCTURED_MIN_RELEVANCE,
        snippet_length=settings.SNIPPET_LENGTH,
    )
    history = SearchHistoryTracker(
        store,
        settings_key=settings.HISTORY_SETTINGS_KEY,
        max_entries=settings.HISTORY_MAX_ENTRIES,
    )
    return HybridSearchUseCase(collector, query_engine, structured_search, history)


def set_global_dependencies(
    store: Optional[ConversationStorePort],
    analysis_cache: Optional[AnalysisCache],
    transcript_cache: Optional[TranscriptSessionCache],
    use_case: Optional[HybridSearchUseCase],
    service_ready: bool,
):
    global _store_instance, _analysis_cache_instance, _transcript_cache_instance
    global _search_use_case_instance, _service_ready_flag

    _store_instance = store
    _analysis_cache_instance = analysis_cache
    _transcript_cache_instance = transcript_cache
    _search_use_case_instance = use_case
    _service_ready_flag = service_ready
    log.debug("Global dependencies set in relive_search.dependencies", service_ready=_service_ready_flag)


async def startup_search_service() -> HybridSearchUseCase:
    """
    Connects to PostgreSQL, wires the caches and the use case, builds the first
    index and publishes everything through the module-level getters.

    Raises:
        ConnectionError: If PostgreSQL cannot be reached.
    """
    log.info(f"Starting up {settings.PROJECT_NAME} v{settings.SERVICE_VERSION}...")
    await postgres_connector.get_db_pool()
    if not await postgres_connector.check_db_connection():
        set_global_dependencies(None, None, None, None, service_ready=False)
        raise ConnectionError("Failed PostgreSQL connection verification during startup.")

    await postgres_connector.ensure_schema()
    store = PostgresConversationStore()
    analysis_cache = AnalysisCache(
        max_items=settings.ANALYSIS_CACHE_MAX_ITEMS,
        ttl_seconds=settings.ANALYSIS_CACHE_TTL_SECONDS,
    )
    transcript_cache = TranscriptSessionCache(
        max_items=settings.ANALYSIS_CACHE_MAX_ITEMS,
        ttl_seconds=settings.ANALYSIS_CACHE_TTL_SECONDS,
    )
    use_case = build_search_use_case(store, analysis_cache, transcript_cache)
    await use_case.initialize()

    set_global_dependencies(store, analysis_cache, transcript_cache, use_case, service_ready=use_case.is_initialized)
    if not use_case.is_initialized:
        log.warning("Search service started without a usable index. Searches will initialize on demand.")
    return use_case


async def shutdown_search_service() -> None:
    log.info(f"Shutting down {settings.PROJECT_NAME}...")
    set_global_dependencies(None, None, None, None, service_ready=False)
    await postgres_connector.close_db_pool()


def get_conversation_store() -> ConversationStorePort:
    if not _service_ready_flag or not _store_instance:
        log.critical("Attempted to get ConversationStore before service is ready or instance is None.")
        raise ServiceNotReadyError("Conversation store is not available at the moment.")
    return _store_instance


def get_analysis_cache() -> AnalysisCache:
    if not _service_ready_flag or _analysis_cache_instance is None:
        log.critical("Attempted to get AnalysisCache before service is ready or instance is None.")
        raise ServiceNotReadyError("Analysis cache is not available at the moment.")
    return _analysis_cache_instance


def get_transcript_cache() -> TranscriptSessionCache:
    if not _service_ready_flag or _transcript_cache_instance is None:
        log.critical("Attempted to get TranscriptSessionCache before service is ready or instance is None.")
        raise ServiceNotReadyError("Transcript cache is not available at the moment.")
    return _transcript_cache_instance


def get_search_use_case() -> HybridSearchUseCase:
    if not _service_ready_flag or not _search_use_case_instance:
        log.critical("Attempted to get HybridSearchUseCase before service is ready or instance is None.")
        raise ServiceNotReadyError("Search service is not ready.")
    return _search_use_case_instance


def get_service_status() -> bool:
    return _service_ready_flag
