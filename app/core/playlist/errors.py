from typing import Optional


class PlaylistError(Exception):
    pass


class MalformedEntry(PlaylistError):
    """A declaration without a usable resource line or required attributes."""

    def __init__(self, line_no: int, reason: str, line: Optional[str] = None) -> None:
        """
        Parameters:
            line_no (int): Zero-based index of the offending declaration line.
            reason (str): Short, human readable cause.
            line (Optional[str]): The raw declaration line, when available.
        """
        self.line_no = line_no
        self.reason = reason
        self.line = line
        super().__init__(f"Malformed entry at line {line_no + 1}: {reason}")


class NoRankableVariant(PlaylistError):
    """Variant blocks exist but none carries a parseable resolution."""

    def __init__(self, variant_count: int) -> None:
        self.variant_count = variant_count
        super().__init__(
            f"None of {variant_count} variant(s) declares a parseable RESOLUTION"
        )
