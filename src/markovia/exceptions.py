class MarkoviaError(Exception):
    """Base class for errors raised by markovia."""


class SessionError(MarkoviaError):
    """A document session was used outside its open/close lifecycle."""


class FrontmatterError(MarkoviaError):
    """Front matter exists but cannot be rewritten without losing data."""
