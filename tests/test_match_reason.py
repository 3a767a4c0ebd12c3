"""Tests for match explanations and content previews."""

from filehub.services.search import content_preview, explain_match


def test_filename_wins_even_with_strong_semantic_match():
    reason = explain_match("bug-fix-auth-flow.mp4", ["engineering"], None, "auth", 0.95)
    assert "Filename matches" in reason
    assert reason.startswith("Filename matches")


def test_token_match_in_filename():
    reason = explain_match("q4-roadmap.pdf", [], None, "product roadmap")
    assert reason == "Filename matches"


def test_tags_capped_at_three():
    tags = ["design-a", "design-b", "design-c", "design-d"]
    reason = explain_match("mockup.fig", tags, None, "design")
    assert reason == "Tags: design-a, design-b, design-c"


def test_content_words():
    reason = explain_match(
        "minutes.txt", [], "We agreed the launch budget today", "launch budget is ok"
    )
    assert reason == 'Content contains: "launch, budget"'


def test_short_tokens_ignored_for_content():
    reason = explain_match("x.txt", [], "it is ok", "is ok", similarity=0.1)
    assert reason == "Partial match"


def test_content_words_deduplicated_and_capped():
    reason = explain_match(
        "x.txt", [], "alpha beta gamma delta", "alpha alpha beta gamma delta"
    )
    assert reason == 'Content contains: "alpha, beta, gamma"'


def test_semantic_reason_when_no_content_words():
    reason = explain_match("x.txt", [], "unrelated words", "galaxy", similarity=0.42)
    assert reason == "Semantically similar content"


def test_reasons_joined_in_priority_order():
    reason = explain_match(
        "auth-notes.md", ["auth"], "auth flow rewrite", "auth", similarity=0.9
    )
    assert reason == 'Filename matches | Tags: auth | Content contains: "auth"'


def test_similarity_bands():
    assert explain_match("x", [], None, "zzz", 0.8) == "Semantically similar content"
    assert explain_match("x", [], None, "zzz", 0.3) == "Partial match"
    assert explain_match("x", [], None, "zzz", None) == "Partial match"


def test_case_insensitive():
    assert explain_match("README.md", [], None, "readme") == "Filename matches"
    assert explain_match("a", ["roadmap"], None, "ROADMAP") == "Tags: roadmap"


def test_preview():
    assert content_preview(None) is None
    assert content_preview("") is None
    assert content_preview("short") == "short"
    long_text = "x" * 200
    assert content_preview(long_text) == "x" * 150 + "..."
    assert content_preview("y" * 150) == "y" * 150
