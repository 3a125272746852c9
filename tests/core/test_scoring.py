from __future__ import annotations

import pytest

from mcp_context_optimizer.core.models import SegmentType
from mcp_context_optimizer.core.scoring.segments import (
    ScoringWeights,
    cap_segments,
    compile_patterns,
    create_segment,
    keyword_boost,
    position_weight,
    score_segments,
    segment_lines,
    segment_paragraphs,
    segment_sentences,
)
from mcp_context_optimizer.core.scoring.tfidf import compute_tfidf_scores, tokenize, top_terms


@pytest.mark.parametrize(
    "weights",
    [(0.5, 0.5, 0.5), (1.2, -0.1, -0.1), (0.2, 0.2, 0.2)],
)
def test_scoring_weights_validation(weights: tuple[float, float, float]) -> None:
    with pytest.raises(ValueError):
        ScoringWeights(*weights)


def test_scoring_weights_default_sums_to_one() -> None:
    w = ScoringWeights()
    assert (w.tfidf, w.position, w.keyword) == (0.4, 0.3, 0.3)
    ScoringWeights(0.2, 0.5, 0.3)


@pytest.mark.parametrize(
    ("position", "expected"),
    [(0.0, 1.0), (0.05, 1.0), (0.15, 0.85), (0.25, 0.7), (0.5, 0.6), (0.75, 0.7), (0.85, 0.85), (1.0, 1.0)],
)
def test_position_weight_is_u_shaped(position: float, expected: float) -> None:
    assert position_weight(position) == expected


def test_keyword_boost() -> None:
    assert keyword_boost("plain words here") == 0.0
    assert keyword_boost("fatal error occurred") == pytest.approx(0.4)
    assert keyword_boost("you must fix this error") == pytest.approx(0.7)
    everything = "- error: you must `run` class Foo? see https://x.io"
    assert keyword_boost(everything) == 1.0


def test_tokenize_drops_stopwords_and_short_words() -> None:
    assert tokenize("The cache is a Fast-path, x!") == ["cache", "fast", "path"]


def test_tfidf_scores() -> None:
    assert compute_tfidf_scores([]) == []
    assert compute_tfidf_scores(["only one document"]) == [0.0]

    scores = compute_tfidf_scores(["shared alpha", "shared beta", "shared"])
    assert all(0.0 <= s <= 1.0 for s in scores)
    assert scores[2] == 0.0 or scores[2] < scores[0]
    assert scores[0] == pytest.approx(scores[1])


def test_top_terms_break_ties_alphabetically() -> None:
    assert top_terms(["gamma delta", "alpha beta"], 3) == ["alpha", "beta", "delta"]
    assert top_terms([], 3) == []


def test_create_segment_position_and_preserve() -> None:
    preserve = compile_patterns([r"CRITICAL"])
    seg = create_segment("CRITICAL: disk full", 5, 5, 11, SegmentType.LINE, preserve=preserve)
    assert seg.position == 0.5
    assert seg.is_preserved
    assert seg.tokens == 5


def test_compile_patterns_rejects_bad_regex() -> None:
    with pytest.raises(ValueError, match="Invalid preserve pattern"):
        compile_patterns(["("])


def test_segment_lines_skips_blank_lines() -> None:
    segments = segment_lines("one\n\ntwo\nthree")
    assert [(s.text, s.start_line) for s in segments] == [("one", 0), ("two", 2), ("three", 3)]


def test_segment_paragraphs_keeps_code_fences_whole() -> None:
    text = "Intro para.\n\n```python\nx = 1\n\ny = 2\n```\n\nOutro."
    segments = segment_paragraphs(text)
    assert [s.type for s in segments] == [SegmentType.PARAGRAPH, SegmentType.CODE_BLOCK, SegmentType.PARAGRAPH]
    assert segments[1].text == "```python\nx = 1\n\ny = 2\n```"
    assert (segments[1].start_line, segments[1].end_line) == (2, 6)


def test_segment_paragraphs_splits_error_paragraphs_into_lines() -> None:
    text = "setup done\nan error occurred\nretrying\n\nall good now\nreally"
    segments = segment_paragraphs(text)
    assert [s.type for s in segments] == [SegmentType.LINE] * 3 + [SegmentType.PARAGRAPH]
    assert segments[1].text == "an error occurred"


def test_segment_sentences() -> None:
    segments = segment_sentences("First one. Second one! Third?\nNext line.")
    assert [s.text for s in segments] == ["First one.", "Second one!", "Third?", "Next line."]
    assert [s.start_line for s in segments] == [0, 0, 0, 1]


def test_score_segments_keeps_order_and_range() -> None:
    segments = segment_lines("fatal error in module\nnothing here\nsomething else\nfinal line")
    scored = score_segments(segments)
    assert [s.text for s in scored] == [s.text for s in segments]
    assert all(0.0 <= s.importance <= 1.0 for s in scored)
    assert scored[0].scores.keyword == pytest.approx(0.4)
    assert scored[0].importance > scored[1].importance


def test_cap_segments_merges_runs() -> None:
    segments = segment_lines("\n".join(f"line {i}" for i in range(10)))
    capped = cap_segments(segments, 3)
    assert len(capped) == 3
    assert "\n".join(s.text for s in capped) == "\n".join(s.text for s in segments)
    assert sum(s.tokens for s in capped) == sum(s.tokens for s in segments)
    assert cap_segments(segments, 20) is segments
