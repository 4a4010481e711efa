class GentxError(Exception):
    pass

class ValidationError(GentxError, ValueError):
    """Malformed input: a bad block template field or bad transaction bytes."""

class EncodingError(GentxError, ValueError):
    """A value that cannot be represented in the requested wire encoding."""

class ConfigurationError(GentxError, ValueError):
    """Pool/chain settings that can't produce a valid coinbase."""
