# streaming/exceptions.py

class ResolutionError(Exception):
    """The start height for a day could not be resolved."""

class StreamCancelled(Exception):
    """A stream's cancel token fired while it was suspended in a long operation."""

class ProtocolError(ValueError):
    """A client message could not be understood."""
