"""Exception types raised by the lexicard core."""


class LexicardError(Exception):
    """Base class for all lexicard errors."""


class GenerationError(LexicardError):
    """The text generator failed for a reason other than quota exhaustion."""


class QuotaExceededError(GenerationError):
    """The text generator signalled a rate-limit or exhausted quota."""


class WordExistsError(LexicardError):
    """The target word is already in the saved list."""


class UnknownWordError(LexicardError):
    """The word is not present where the operation expects it."""
