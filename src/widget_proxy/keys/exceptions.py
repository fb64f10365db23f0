"""
Key pool exceptions.
"""


class ConfigurationError(Exception):
    """
    Raised when the key pool cannot be built from the given configuration.

    Examples:
    - No API keys configured
    - Missing prompt ID
    - Two keys sharing the same label

    Fatal at startup; never retried.
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []
