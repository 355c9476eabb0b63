class BlackjackError(Exception):
    """Base class for every error raised by the blackjack server."""


class EmptyShoeError(BlackjackError):
    """Raised when a card is dealt from a shoe with no cards left."""


class InvalidActionError(BlackjackError):
    """Raised when a session transition is not valid in the current phase."""
