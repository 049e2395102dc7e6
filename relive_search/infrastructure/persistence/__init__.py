# relive_search/infrastructure/persistence/__init__.py
from .memory_repositories import InMemoryConversationStore
from .postgres_repositories import PostgresConversationStore

__all__ = ["InMemoryConversationStore", "PostgresConversationStore"]
