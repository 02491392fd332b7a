from pathlib import Path

import pytest

from scribble.sources.markdown import MarkdownSource, parse_frontmatter, parse_note


class TestParseNote:
    def test_frontmatter_title_and_tags(self):
        text = "---\ntitle: Weekly review\ntags: [work, planning]\n---\nBody text"

        title, body, tags = parse_note(text, "fallback")

        assert title == "Weekly review"
        assert body == "Body text"
        assert tags == frozenset({"work", "planning"})

    def test_comma_separated_tags(self):
        _, _, tags = parse_note("---\ntags: '#ideas, books'\n---\n", "x")

        assert tags == frozenset({"ideas", "books"})

    def test_heading_title(self):
        title, body, tags = parse_note("# Reading list\n\n- Dune", "fallback")

        assert title == "Reading list"
        assert body == "# Reading list\n\n- Dune"
        assert tags == frozenset()

    def test_default_title(self):
        assert parse_note("just text", "filename")[0] == "filename"

    def test_invalid_frontmatter_is_kept_as_body(self):
        text = "---\ntitle: [unclosed\n---\nrest"

        assert parse_frontmatter(text) == ({}, text)


class TestMarkdownSource:
    @pytest.mark.asyncio
    async def test_scan(self, tmp_path: Path):
        (tmp_path / "a.md").write_text("# Alpha\ncontent a")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b.md").write_text("---\ntitle: Beta\n---\ncontent b")
        (tmp_path / ".hidden").mkdir()
        (tmp_path / ".hidden" / "c.md").write_text("hidden")
        (tmp_path / "notes.txt").write_text("not markdown")

        docs = await MarkdownSource(tmp_path, owner_id="alice").scan()

        assert [d.id for d in docs] == ["a.md", "sub/b.md"]
        assert [d.title for d in docs] == ["Alpha", "Beta"]
        assert all(d.owner_id == "alice" and d.source == "notes" for d in docs)

    def test_missing_path(self, tmp_path: Path):
        with pytest.raises(ValueError):
            MarkdownSource(tmp_path / "nope", owner_id="alice")
