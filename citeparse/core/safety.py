"""Input length guard applied before any pattern matching."""

from citeparse.core.config import MAX_REGEX_INPUT_LENGTH


class InputTooLarge(ValueError):
    """Input exceeds the maximum length patterns may be applied to."""

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Input too large for pattern matching: {length} characters "
            f"(max: {max_length})"
        )


def validate_input(text: str, max_length: int = MAX_REGEX_INPUT_LENGTH) -> None:
    """Raise InputTooLarge if text is longer than max_length.

    Length is counted in code points, not bytes.
    """
    if len(text) > max_length:
        raise InputTooLarge(len(text), max_length)
