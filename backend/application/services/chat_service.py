"""
Chat service for grounded generation.

Augments a collection's system prompt with retrieved context when
retrieval is available, then calls the chat model. Retrieval never blocks
a reply: any retrieval failure falls back to the plain system prompt.

Dependencies: langchain_core, backend.application.services.rag_service
System role: Generation boundary
"""

import logging

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from backend.application.services.rag_service import RAGService
from backend.configs.chat import ChatSettings
from backend.models.chat import ChatMessage, ChatReply, RAGContextInfo
from backend.models.rag import AIContext, RAGConfig

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "=== CONTEXT ==="
INSTRUCTIONS_HEADER = "=== INSTRUCTIONS ==="
CONTEXT_INSTRUCTIONS = (
    "- Answer primarily from the context above\n"
    "- If the context does not contain the requested information, say so clearly\n"
    "- Cite your sources (e.g. [Source 1]) when possible\n"
    "- Stay factual and precise"
)


def build_augmented_prompt(system_prompt: str, context: str) -> str:
    """Append a delimited context section and grounding instructions to a system prompt."""
    return (
        f"{system_prompt}\n\n"
        f"{CONTEXT_HEADER}\n"
        "Relevant information found in the collection's documents:\n\n"
        f"{context}\n\n"
        f"{INSTRUCTIONS_HEADER}\n"
        f"{CONTEXT_INSTRUCTIONS}"
    )


class ChatService:
    """
    Chat service for conversational replies over a collection.

    Coordinates the availability check, retrieval, prompt augmentation
    and the chat model call.
    """

    def __init__(
        self,
        rag_service: RAGService,
        chat_model: BaseChatModel,
        settings: ChatSettings | None = None,
    ) -> None:
        """
        Initialize chat service.

        Args:
            rag_service: Retrieval orchestrator
            chat_model: LangChain chat model used for generation
            settings: Chat settings (history window, model name, RAG switch)
        """
        self.rag_service = rag_service
        self.chat_model = chat_model
        self.settings = settings or ChatSettings()

    async def retrieve_context(
        self,
        collection_id: str,
        user_message: str,
        rag_config: RAGConfig | None = None,
    ) -> AIContext | None:
        """
        Fetch grounding context for a message.

        Returns None when retrieval is disabled, unavailable, finds nothing,
        or fails for any reason.
        """
        if not self.settings.rag_enabled:
            return None

        try:
            availability = await self.rag_service.check_availability(collection_id)
            if not availability.available:
                logger.info(
                    f"{__name__}:retrieve_context - Retrieval unavailable",
                    extra={
                        "collection_id": collection_id,
                        "has_embeddings": availability.has_embeddings,
                        "provider_configured": availability.provider_configured,
                    },
                )
                return None

            ai_context = await self.rag_service.search_for_ai(collection_id, user_message, rag_config)
        except Exception as e:
            logger.warning(
                f"{__name__}:retrieve_context - Retrieval failed, continuing without context",
                extra={"collection_id": collection_id, "error_type": type(e).__name__, "error": str(e)},
            )
            return None

        if not ai_context.context:
            return None
        return ai_context

    def build_messages(
        self,
        system_prompt: str,
        history: list[ChatMessage],
        user_message: str,
    ) -> list[BaseMessage]:
        """System prompt, the last history_window messages, then the new user message."""
        window = self.settings.history_window
        recent = history[-window:] if window else []

        messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
        for message in recent:
            if message.role == "user":
                messages.append(HumanMessage(content=message.content))
            else:
                messages.append(AIMessage(content=message.content))
        messages.append(HumanMessage(content=user_message))
        return messages

    async def generate_reply(
        self,
        system_prompt: str,
        history: list[ChatMessage],
        user_message: str,
        collection_id: str | None = None,
        rag_config: RAGConfig | None = None,
    ) -> ChatReply:
        """
        Generate a reply, grounded in the collection when possible.

        Args:
            system_prompt: Collection's system prompt
            history: Previous conversation messages, oldest first
            user_message: New user message
            collection_id: Collection to retrieve from (None disables retrieval)
            rag_config: Optional retrieval configuration

        Returns:
            ChatReply: Model text plus retrieval details when context was used
        """
        ai_context = None
        if collection_id:
            ai_context = await self.retrieve_context(collection_id, user_message, rag_config)

        prompt = system_prompt
        if ai_context is not None:
            prompt = build_augmented_prompt(system_prompt, ai_context.context)

        messages = self.build_messages(prompt, history, user_message)
        response = await self.chat_model.ainvoke(messages)

        rag_context = None
        if ai_context is not None:
            rag_context = RAGContextInfo(
                sources=ai_context.sources,
                matches_found=ai_context.stats.matches_found,
                similarity_scores=ai_context.stats.similarity_scores,
                query_time_ms=ai_context.stats.query_time_ms,
            )

        logger.info(
            f"{__name__}:generate_reply - Reply generated",
            extra={"grounded": rag_context is not None, "history": len(messages) - 2},
        )
        return ChatReply(
            content=self._message_text(response),
            model=self.settings.model,
            rag_context=rag_context,
        )

    @staticmethod
    def _message_text(message: BaseMessage) -> str:
        content = message.content
        if isinstance(content, str):
            return content
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
