"""
Dependency injection container.

Factory functions that build the process-wide RAG and chat services from
settings. Every builder accepts explicit settings so tests can bypass the
environment.

Dependencies: backend.configs, backend.application, backend.boundary, langchain_google_genai
System role: Composition root
"""

import logging
from functools import lru_cache

from dotenv import load_dotenv
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI

from backend.application.services.chat_service import ChatService
from backend.application.services.rag_service import RAGService
from backend.boundary.vdb.index_store import IndexStore
from backend.boundary.vdb.vector_store_factory import get_vector_store
from backend.configs import Settings, get_settings
from backend.core.document_processing.tasks import ChunkingTask, EmbeddingTask
from backend.models.rag import RAGConfig
from backend.observability.logger import configure_logging

load_dotenv()

logger = logging.getLogger(__name__)


def build_rag_service(
    settings: Settings,
    embedder: EmbeddingTask | None = None,
    store: IndexStore | None = None,
) -> RAGService:
    """
    Build a RAG service.

    Args:
        settings: Application settings
        embedder: Optional embedding task (built from settings when omitted)
        store: Optional index store (selected by store_type when omitted)

    Returns:
        RAGService: Service wired to the configured provider and store
    """
    default_config = RAGConfig.from_settings(settings)
    if embedder is None:
        embedder = EmbeddingTask(settings.embedding)
    if store is None:
        store = get_vector_store(settings, dimensions=embedder.spec.dimensions)
    return RAGService(
        chunker=ChunkingTask(default_config.chunking_config),
        embedder=embedder,
        store=store,
        insert_batch_size=settings.vector_store.insert_batch_size,
        default_config=default_config,
    )


def build_chat_model(settings: Settings) -> BaseChatModel:
    """Gemini chat model configured from chat settings."""
    return ChatGoogleGenerativeAI(
        model=settings.chat.model,
        temperature=settings.chat.temperature,
        max_output_tokens=settings.chat.max_output_tokens,
        google_api_key=settings.embedding.gemini_api_key,
    )


def build_chat_service(
    settings: Settings,
    rag_service: RAGService,
    chat_model: BaseChatModel | None = None,
) -> ChatService:
    """Build the generation boundary on top of a RAG service."""
    return ChatService(
        rag_service=rag_service,
        chat_model=chat_model or build_chat_model(settings),
        settings=settings.chat,
    )


@lru_cache
def get_rag_service() -> RAGService:
    """
    Get RAG service singleton.

    Configures logging on first use.

    Returns:
        RAGService: Service built from environment settings
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    return build_rag_service(settings)


@lru_cache
def get_chat_service() -> ChatService:
    """Get chat service singleton sharing the RAG service singleton."""
    return build_chat_service(get_settings(), get_rag_service())


async def shutdown_services() -> None:
    """
    Close resources held by the cached services and reset the singletons.

    Call once on application shutdown; a later accessor call builds fresh
    services.
    """
    if get_rag_service.cache_info().currsize:
        await get_rag_service().aclose()
        logger.info(f"{__name__}:shutdown_services - RAG service closed")
    get_chat_service.cache_clear()
    get_rag_service.cache_clear()
