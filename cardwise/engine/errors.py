"""Exception types raised by the Cardwise core."""


class CardwiseError(Exception):
    """Base class for all core failures."""


class NotFound(CardwiseError):
    """A card or schedule does not exist for the given id."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class AlreadyExists(CardwiseError):
    """A record that must be unique was created twice."""

    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} already exists: {key}")
        self.kind = kind
        self.key = key


class ValidationError(CardwiseError):
    """Input was malformed (missing question, bad rating, broken import file...)."""


class StorageFailure(CardwiseError):
    """The underlying SQLite store failed."""
