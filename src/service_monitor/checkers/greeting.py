"""
Greeting matcher for banner-announcing services.

Accumulates the first bytes received on a connection and compares them,
once, against the expected greeting prefix.
"""

from enum import Enum


class MatchVerdict(Enum):
    """Outcome of feeding a chunk of data to a GreetingMatcher."""
    PENDING = "pending"
    MATCHED = "matched"
    MISMATCHED = "mismatched"
    IGNORED = "ignored"


class GreetingMatcher:
    """
    One-shot prefix matcher over the start of a byte stream.

    The first len(greeting) bytes received across the life of the connection
    are compared byte-exact against the greeting. Once that comparison has
    happened the matcher is inert: further chunks are neither buffered nor
    compared and return IGNORED.
    """

    def __init__(self, greeting: bytes):
        """
        Initialize the matcher.

        Args:
            greeting: Expected greeting prefix (non-empty)

        Raises:
            ValueError: If greeting is empty
        """
        if not greeting:
            raise ValueError("Expected greeting must not be empty")
        self.greeting = bytes(greeting)
        self._buffer = bytearray()
        self._verdict = MatchVerdict.PENDING

    @property
    def verdict(self) -> MatchVerdict:
        """PENDING until the greeting length has been reached, then MATCHED or MISMATCHED."""
        return self._verdict

    @property
    def resolved(self) -> bool:
        return self._verdict is not MatchVerdict.PENDING

    @property
    def buffered(self) -> bytes:
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> MatchVerdict:
        """
        Feed received bytes to the matcher.

        Args:
            chunk: Bytes received from the stream

        Returns:
            PENDING if more bytes are needed, MATCHED or MISMATCHED on the call
            that completes the prefix, IGNORED on any call after that.
        """
        if self.resolved:
            return MatchVerdict.IGNORED

        # Buffer never grows past the greeting length
        needed = len(self.greeting) - len(self._buffer)
        self._buffer.extend(chunk[:needed])

        if len(self._buffer) < len(self.greeting):
            return MatchVerdict.PENDING

        if bytes(self._buffer) == self.greeting:
            self._verdict = MatchVerdict.MATCHED
        else:
            self._verdict = MatchVerdict.MISMATCHED
        return self._verdict
