from scribble.search.excerpt import find_match, make_excerpt


class TestMakeExcerpt:
    def test_empty_content(self):
        assert make_excerpt("", "anything") == ""

    def test_short_content_with_match(self):
        content = "the quick brown fox jumps"

        excerpt = make_excerpt(content, "brown")

        assert "brown" in excerpt
        assert excerpt == content

    def test_case_insensitive(self):
        assert make_excerpt("The Quick Brown Fox", "BROWN") == "The Quick Brown Fox"

    def test_window_around_match(self):
        content = "a" * 100 + "needle" + "b" * 300

        excerpt = make_excerpt(content, "needle")

        # 50 chars before, query, 150 chars after
        assert excerpt == "..." + content[50:256] + "..."

    def test_match_near_start_has_no_prefix(self):
        content = "abc needle " + "x" * 400

        excerpt = make_excerpt(content, "needle")

        assert excerpt.startswith("abc needle")
        assert excerpt.endswith("...")

    def test_match_near_end_has_no_suffix(self):
        content = "x" * 400 + " needle"

        excerpt = make_excerpt(content, "needle")

        assert excerpt.startswith("...")
        assert excerpt.endswith(" needle")
        assert excerpt == "..." + content[content.index("needle") - 50 :]

    def test_fallback_truncates_long_content(self):
        content = "z" * 250

        assert make_excerpt(content, "missing") == "z" * 200 + "..."

    def test_fallback_returns_short_content_unchanged(self):
        content = "z" * 200

        assert make_excerpt(content, "missing") == content

    def test_empty_query_matches_at_start(self):
        content = "q" * 300

        assert make_excerpt(content, "") == "q" * 150 + "..."

    def test_empty_query_short_content(self):
        assert make_excerpt("short note", "") == "short note"

    def test_custom_length(self):
        assert make_excerpt("abcdefghij", "zzz", length=4) == "abcd..."

    def test_query_longer_than_content(self):
        assert make_excerpt("short", "much longer query") == "short"

    def test_unicode_content(self):
        content = "日本語のノート: café au lait ☕ recipe"

        excerpt = make_excerpt(content, "CAFÉ")

        assert excerpt == content


class TestFindMatch:
    def test_not_found(self):
        assert find_match("hello", "world") == -1

    def test_empty_query(self):
        assert find_match("hello", "") == 0
        assert find_match("İstanbul", "") == 0

    def test_case_folding_that_changes_length(self):
        # "İ".lower() is two code points, which shifts naive offsets
        content = "İstanbul trip notes"

        index = find_match(content, "NOTES")

        assert index == 14
        assert content[index : index + 5] == "notes"
        assert make_excerpt(content, "notes") == content
