"""
Tests for the greeting matcher.

Covers prefix matching, chunking invariance and inertness after a verdict.
"""

from hypothesis import given, strategies as st, settings
import pytest

from service_monitor.checkers.greeting import GreetingMatcher, MatchVerdict


def feed_all(greeting: bytes, chunks) -> MatchVerdict:
    """Feed chunks in order and return the matcher's final verdict."""
    matcher = GreetingMatcher(greeting)
    for chunk in chunks:
        matcher.feed(chunk)
    return matcher.verdict


@st.composite
def greeting_and_stream(draw):
    """Generate a greeting plus a stream that may or may not start with it."""
    greeting = draw(st.binary(min_size=1, max_size=16))
    if draw(st.booleans()):
        stream = greeting + draw(st.binary(max_size=32))
    else:
        stream = draw(st.binary(max_size=48))
    return greeting, stream


@st.composite
def split_points(draw, data: bytes):
    """Split data into consecutive chunks at random cut points."""
    cuts = sorted(draw(st.lists(st.integers(min_value=0, max_value=len(data)), max_size=8)))
    chunks = []
    previous = 0
    for cut in cuts + [len(data)]:
        chunks.append(data[previous:cut])
        previous = cut
    return chunks


class TestGreetingMatcher:
    """Tests for GreetingMatcher class."""

    def test_exact_greeting_matches(self):
        """Test that the exact greeting gives MATCHED."""
        matcher = GreetingMatcher(b"NOTICE AUTH")
        assert matcher.feed(b"NOTICE AUTH") == MatchVerdict.MATCHED
        assert matcher.verdict == MatchVerdict.MATCHED

    def test_greeting_followed_by_more_data_matches(self):
        """Test that trailing bytes after the greeting are irrelevant."""
        matcher = GreetingMatcher(b"NOTICE AUTH")
        assert matcher.feed(b"NOTICE AUTH :*** Looking up your hostname\r\n") == MatchVerdict.MATCHED

    def test_same_length_different_greeting_mismatches(self):
        """Test that a different greeting of the same length gives MISMATCHED."""
        matcher = GreetingMatcher(b"NOTICE AUTH")
        assert matcher.feed(b"NOTICE ERRO") == MatchVerdict.MISMATCHED

    def test_partial_greeting_is_pending(self):
        """Test that fewer bytes than the greeting length keep the matcher pending."""
        matcher = GreetingMatcher(b"NOTICE AUTH")
        assert matcher.feed(b"NOTICE") == MatchVerdict.PENDING
        assert matcher.feed(b" AU") == MatchVerdict.PENDING
        assert matcher.feed(b"TH") == MatchVerdict.MATCHED

    def test_greeting_is_prefix_match_not_search(self):
        """Test that the greeting must be at the very start of the stream."""
        matcher = GreetingMatcher(b"NOTICE AUTH")
        assert matcher.feed(b":server NOTICE AUTH") == MatchVerdict.MISMATCHED

    def test_comparison_is_byte_exact(self):
        """Test that case differences are a mismatch."""
        matcher = GreetingMatcher(b"NOTICE AUTH")
        assert matcher.feed(b"notice auth") == MatchVerdict.MISMATCHED

    def test_feed_after_match_is_ignored(self):
        """Test that later chunks are ignored once matched."""
        matcher = GreetingMatcher(b"HELLO")
        matcher.feed(b"HELLO")
        assert matcher.feed(b"anything") == MatchVerdict.IGNORED
        assert matcher.verdict == MatchVerdict.MATCHED

    def test_feed_after_mismatch_is_ignored(self):
        """Test that later chunks never turn a mismatch into a match."""
        matcher = GreetingMatcher(b"HELLO")
        matcher.feed(b"WORLD")
        assert matcher.feed(b"HELLO") == MatchVerdict.IGNORED
        assert matcher.verdict == MatchVerdict.MISMATCHED

    def test_buffer_capped_at_greeting_length(self):
        """Test that no more than len(greeting) bytes are buffered."""
        matcher = GreetingMatcher(b"HELLO")
        matcher.feed(b"HEL")
        matcher.feed(b"LO and a lot more data")
        matcher.feed(b"even more")
        assert matcher.buffered == b"HELLO"

    def test_empty_chunk_keeps_pending(self):
        """Test that an empty chunk does not change state."""
        matcher = GreetingMatcher(b"HELLO")
        assert matcher.feed(b"") == MatchVerdict.PENDING
        assert not matcher.resolved

    def test_empty_greeting_rejected(self):
        """Test that an empty greeting is rejected."""
        with pytest.raises(ValueError):
            GreetingMatcher(b"")


class TestGreetingMatcherProperties:
    """Property tests for GreetingMatcher."""

    @settings(max_examples=200)
    @given(data=st.data(), case=greeting_and_stream())
    def test_chunking_does_not_change_verdict(self, data, case):
        """Feeding arbitrary chunks gives the same verdict as feeding everything at once."""
        greeting, stream = case
        chunks = data.draw(split_points(stream))

        assert feed_all(greeting, chunks) == feed_all(greeting, [stream])

    @settings(max_examples=200)
    @given(case=greeting_and_stream())
    def test_byte_at_a_time_matches_single_feed(self, case):
        """Feeding one byte at a time gives the same verdict as one feed."""
        greeting, stream = case
        one_by_one = [stream[i:i + 1] for i in range(len(stream))]

        assert feed_all(greeting, one_by_one) == feed_all(greeting, [stream])

    @given(case=greeting_and_stream(), extra=st.lists(st.binary(max_size=16), max_size=5))
    def test_verdict_is_final(self, case, extra):
        """Once resolved, further feeds return IGNORED and keep the verdict."""
        greeting, stream = case
        matcher = GreetingMatcher(greeting)
        matcher.feed(stream)
        if not matcher.resolved:
            return

        verdict = matcher.verdict
        for chunk in extra:
            assert matcher.feed(chunk) == MatchVerdict.IGNORED
        assert matcher.verdict == verdict

    @given(case=greeting_and_stream())
    def test_verdict_reflects_prefix(self, case):
        """The verdict is MATCHED exactly when the stream starts with the greeting."""
        greeting, stream = case
        verdict = feed_all(greeting, [stream])

        if len(stream) < len(greeting):
            assert verdict == MatchVerdict.PENDING
        elif stream.startswith(greeting):
            assert verdict == MatchVerdict.MATCHED
        else:
            assert verdict == MatchVerdict.MISMATCHED
