"""Question answering over an owner's notes.

Each question runs a hybrid search, the best notes are handed to the chat
model as context, and the exchange is kept in an in-process conversation so
follow-up questions see the earlier turns.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from litellm import acompletion

from scribble.constants import (
    CHAT_TEMPERATURE,
    CONVERSATION_HISTORY_LIMIT,
    CONVERSATION_SEARCH_LIMIT,
    CONVERSATION_SOURCE_LIMIT,
    CONVERSATION_TITLE_LENGTH,
)
from scribble.logging import get_logger
from scribble.search.retrieval import HybridRanker
from scribble.search.types import SearchResult

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are Scribble, an assistant that helps people search their own notes.

Answer the question directly and concisely. Cite the notes you rely on as [Note: "Title"].
If the notes do not contain the answer, say so. Offer more detail when it would help.

Relevant notes:
{context}"""

NO_CONTEXT = "(no matching notes)"


class ConversationNotFoundError(LookupError):
    pass


class ChatUnavailableError(RuntimeError):
    pass


@dataclass
class Message:
    role: str  # "user" | "assistant"
    content: str
    source_ids: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class Conversation:
    id: str
    owner_id: str
    title: str
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class ConversationalAnswer:
    response: str
    sources: list[SearchResult]
    conversation_id: str

    def to_dict(self) -> dict:
        return {
            "response": self.response,
            "sources": [s.to_dict() for s in self.sources],
            "conversation_id": self.conversation_id,
        }


def build_context(results: list[SearchResult]) -> str:
    return "\n\n".join(f"[Note: {r.title}]\n{r.excerpt}" for r in results)


class ConversationalSearch:
    def __init__(
        self,
        ranker: HybridRanker,
        model: str | None,
        search_limit: int = CONVERSATION_SEARCH_LIMIT,
        history_limit: int = CONVERSATION_HISTORY_LIMIT,
        temperature: float = CHAT_TEMPERATURE,
    ):
        self.ranker = ranker
        self.model = model
        self.search_limit = search_limit
        self.history_limit = history_limit
        self.temperature = temperature
        self._conversations: dict[str, Conversation] = {}

    def get_conversation(self, owner_id: str, conversation_id: str) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        # another owner's conversation is reported as missing
        if conversation is None or conversation.owner_id != owner_id:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    def _build_messages(self, conversation: Conversation, query: str, results: list[SearchResult]) -> list[dict]:
        history = conversation.messages[-self.history_limit :] if self.history_limit > 0 else []
        return [
            {"role": "system", "content": SYSTEM_PROMPT.format(context=build_context(results) or NO_CONTEXT)},
            *({"role": m.role, "content": m.content} for m in history),
            {"role": "user", "content": query},
        ]

    async def handle_query(
        self,
        query: str,
        owner_id: str,
        conversation_id: str | None = None,
    ) -> ConversationalAnswer:
        """Answer query from the owner's notes, continuing conversation_id if given.

        Raises ChatUnavailableError without a chat model, ConversationNotFoundError
        for an unknown conversation and ValueError for a malformed query. Model
        errors are logged and re-raised.
        """
        if not self.model:
            raise ChatUnavailableError("No chat model configured")

        conversation = self.get_conversation(owner_id, conversation_id) if conversation_id else None
        results = await self.ranker.hybrid_search(query, owner_id, self.search_limit)
        if conversation is None:
            conversation = Conversation(
                id=uuid.uuid4().hex,
                owner_id=owner_id,
                title=query[:CONVERSATION_TITLE_LENGTH],
            )

        try:
            response = await acompletion(
                model=self.model,
                messages=self._build_messages(conversation, query, results),
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(
                "Conversational query failed: %s",
                e,
                owner_id=owner_id,
                conversation_id=conversation.id,
                error_kind=type(e).__name__,
            )
            raise

        answer = response.choices[0].message.content or ""
        conversation.messages.append(Message(role="user", content=query))
        conversation.messages.append(
            Message(role="assistant", content=answer, source_ids=[r.document_id for r in results])
        )
        self._conversations[conversation.id] = conversation

        logger.debug(
            "Answered from %d notes",
            len(results),
            owner_id=owner_id,
            conversation_id=conversation.id,
        )
        return ConversationalAnswer(
            response=answer,
            sources=results[:CONVERSATION_SOURCE_LIMIT],
            conversation_id=conversation.id,
        )
