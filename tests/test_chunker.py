# tests/test_chunker.py
import pytest

from specialist_agent.exceptions import InvalidInputError
from specialist_agent.memory.chunker import split_documents, split_text
from specialist_agent.memory.schemas import Document, DocumentType


SAMPLE = "Cats are mammals. Dogs are mammals too."


class TestSplitText:
    """Boundary-aware overlapping chunking."""

    def test_breaks_at_sentence_boundary(self):
        """A window containing a period is cut right after it."""
        chunks = split_text(SAMPLE, 20, 5)

        assert chunks[0] == "Cats are mammals."

    def test_short_example_full_output(self):
        """Every chunk after the first starts `overlap` characters back."""
        chunks = split_text(SAMPLE, 20, 5)

        assert chunks == [
            "Cats are mammals.",
            "mals. Dogs are mamma",
            "mammals too.",
        ]

    def test_text_shorter_than_size_is_one_chunk(self):
        assert split_text("Just one line", 100, 10) == ["Just one line"]

    def test_empty_and_whitespace_text(self):
        assert split_text("", 100, 10) == []
        assert split_text("   \n\n  ", 100, 10) == []

    def test_deterministic(self):
        """Same input, same output."""
        text = "Alpha beta. Gamma delta.\n\nEpsilon zeta eta. Theta." * 20

        assert split_text(text, 50, 10) == split_text(text, 50, 10)

    def test_chunks_non_empty_and_bounded(self):
        text = "word " * 500

        chunks = split_text(text, 60, 15)

        assert chunks
        assert all(chunk for chunk in chunks)
        assert all(len(chunk) <= 60 for chunk in chunks)

    def test_reconstruction_modulo_overlap(self):
        """Chunks are ordered substrings covering the text from start to end."""
        text = "First sentence here. Second one follows.\n\nThird paragraph starts. " * 10

        chunks = split_text(text, 80, 20)

        position = 0
        for chunk in chunks:
            found = text.find(chunk, max(0, position - 20))
            assert found >= 0
            assert found <= position + 1
            position = found + len(chunk)

        assert text.startswith(chunks[0])
        assert text.rstrip().endswith(chunks[-1])

    def test_paragraph_break_preferred_when_later(self):
        """The later of '.' and a blank line wins."""
        text = "One. Two three four\n\nfive six seven eight nine ten"

        chunks = split_text(text, 25, 5)

        assert chunks[0] == "One. Two three four"

    def test_no_boundary_uses_full_window(self):
        text = "a" * 45

        chunks = split_text(text, 20, 5)

        assert chunks[0] == "a" * 20
        assert chunks[1] == "a" * 20

    def test_terminates_when_cut_is_shorter_than_overlap(self):
        """A boundary right after the start never stalls the loop."""
        text = "A. " + "b" * 100

        chunks = split_text(text, 20, 10)

        assert chunks[0] == "A."
        assert len(chunks) < 20

    @pytest.mark.parametrize("size,overlap", [(10, 10), (10, 20), (0, 0), (-5, 0), (10, -1)])
    def test_invalid_arguments_rejected(self, size, overlap):
        with pytest.raises(InvalidInputError):
            split_text(SAMPLE, size, overlap)


class TestSplitDocuments:
    """Chunk tagging across several documents."""

    def test_tags_positions_and_inherits_metadata(self):
        documents = [
            Document(content=SAMPLE, source="animals.txt", title="animals"),
            Document(
                content="Short doc.",
                source="notes.md",
                title="notes",
                type=DocumentType.MARKDOWN,
            ),
        ]

        chunks = split_documents(documents, 20, 5)

        assert [c.original_doc_index for c in chunks] == [0, 0, 0, 1]
        assert [c.chunk_index for c in chunks] == [0, 1, 2, 0]
        assert chunks[0].source == "animals.txt"
        assert chunks[-1].title == "notes"
        assert chunks[-1].type == DocumentType.MARKDOWN

    def test_record_metadata_defaults(self):
        documents = [Document(content="Text.", source="", title="")]

        chunk = split_documents(documents, 20, 5)[0]

        assert chunk.record_metadata() == {
            "source": "unknown",
            "title": "untitled",
            "chunk_index": 0,
        }
