# tests/test_workflow.py
import pytest

from specialist_agent.exceptions import InvalidInputError, LLMError
from specialist_agent.memory.schemas import Chunk, SearchResult
from specialist_agent.prompts.prompt_builder import build_answer_prompt, build_document_context
from specialist_agent.workflow.document_qa import answer_question, to_sources


@pytest.fixture
def populated_index(index):
    index.add_documents([
        Chunk(content="Cats are mammals.", source="animals.txt", title="animals"),
        Chunk(content="Dogs are mammals too.", source="animals.txt", title="animals", chunk_index=1),
        Chunk(content="Quarterly revenue grew.", source="report.pdf", title="report"),
    ])
    return index


class TestPromptBuilding:
    """Prompt construction."""

    def test_document_context_blocks(self):
        chunks = [
            SearchResult(content="Chunk one", metadata={"source": "a.txt"}, similarity=0.9, distance=0.1),
            SearchResult(content="Chunk two", metadata={}, similarity=0.5, distance=0.5),
        ]

        assert build_document_context(chunks) == (
            "Source: a.txt\nChunk one\n\n---\n\nSource: unknown\nChunk two"
        )

    def test_prompt_sections_in_order(self):
        prompt = build_answer_prompt("What is a cat?", "Source: a.txt\nCats.", "user: hi")

        positions = [
            prompt.index("Document Context:"),
            prompt.index("Conversation Context:"),
            prompt.index("Question: What is a cat?"),
            prompt.index("Instructions:"),
        ]
        assert positions == sorted(positions)
        assert prompt.endswith("Answer:")

    def test_conversation_block_omitted_when_empty(self):
        prompt = build_answer_prompt("Q?", "context")

        assert "Conversation Context:" not in prompt


class TestAnswerQuestion:
    """Retrieval, prompt, chat and session write-back."""

    def test_answer_with_sources(self, populated_index, conversations, llm):
        result = answer_question("Are cats mammals?", populated_index, conversations, llm)

        assert result.answer == llm.answer
        assert result.session_id is None
        assert 0 < len(result.sources) <= 5
        assert result.sources[0].source == "animals.txt"
        assert "Source: animals.txt" in llm.prompts[0]
        assert "Question: Are cats mammals?" in llm.prompts[0]

    def test_source_similarity_is_one_minus_distance(self):
        results = [SearchResult(content="x", metadata={"source": "s", "title": "t"}, similarity=0.75, distance=0.25)]

        assert to_sources(results)[0].similarity == pytest.approx(0.75)

    def test_no_session_no_write_back(self, populated_index, conversations, llm):
        answer_question("Are cats mammals?", populated_index, conversations, llm)

        assert conversations.get_config()["active_conversations"] == 0

    def test_unknown_session_is_created_with_exchange(self, populated_index, conversations, llm):
        """An unknown session id still gets an answer and a two-message history."""
        result = answer_question("Are cats mammals?", populated_index, conversations, llm, session_id="ghost")

        assert result.session_id == "ghost"
        assert conversations.get_conversation_stats("ghost")["message_count"] == 2

        user, assistant = conversations.get_context("ghost", include_system_message=False)
        assert user.content == "Are cats mammals?"
        assert assistant.content == llm.answer
        assert assistant.sources == [s.model_dump() for s in result.sources]

    def test_follow_up_includes_conversation_context(self, populated_index, conversations, llm):
        answer_question("Are cats mammals?", populated_index, conversations, llm, session_id="s")
        answer_question("And dogs?", populated_index, conversations, llm, session_id="s")

        assert "Conversation Context:" not in llm.prompts[0]
        assert "Conversation Context:\nRecent conversation context:" in llm.prompts[1]
        assert "user: Are cats mammals?" in llm.prompts[1]

    def test_empty_index_still_answers(self, index, conversations, llm, embedder):
        result = answer_question("Anything?", index, conversations, llm)

        assert result.sources == []
        assert embedder.calls == []

    def test_chat_failure_propagates(self, populated_index, conversations, failing_llm):
        with pytest.raises(LLMError):
            answer_question("Are cats mammals?", populated_index, conversations, failing_llm, session_id="s")

        assert conversations.get_conversation_stats("s") is None

    def test_record_failure_does_not_fail_answer(self, populated_index, llm):

        class BrokenConversations:
            def get_conversation_summary(self, session_id):
                raise RuntimeError("summary unavailable")

            def add_message(self, *args, **kwargs):
                raise RuntimeError("store unavailable")

        result = answer_question("Are cats mammals?", populated_index, BrokenConversations(), llm, session_id="s")

        assert result.answer == llm.answer

    @pytest.mark.parametrize("question", ["", "   ", None])
    def test_empty_question_rejected(self, populated_index, conversations, llm, embedder, question):
        calls_before = len(embedder.calls)

        with pytest.raises(InvalidInputError):
            answer_question(question, populated_index, conversations, llm)

        assert len(embedder.calls) == calls_before
        assert llm.prompts == []
