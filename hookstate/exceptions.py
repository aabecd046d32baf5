"""Exception classes for the state store."""


class StateError(Exception):
    """Base exception for state store errors."""

    pass


class BackendUnavailableError(StateError):
    """Raised when a storage file or database cannot be opened."""

    def __init__(self, location: str, details: str = ""):
        """Initialize with location and details."""
        self.location = location
        message = f"Storage backend unavailable at {location}"
        if details:
            message += f": {details}"
        super().__init__(message)


class CorruptDataError(StateError):
    """Raised when stored data cannot be decoded."""

    def __init__(self, location: str, details: str = ""):
        """Initialize with location and details."""
        self.location = location
        message = f"Corrupt state data at {location}"
        if details:
            message += f": {details}"
        super().__init__(message)


class TypeMismatchError(StateError, TypeError):
    """Raised when a counter or list operation meets a value of the wrong type."""

    def __init__(self, key: str, expected: str, actual: object):
        """Initialize with key, expected kind and the offending value."""
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Value at {key!r} is {type(actual).__name__}, expected {expected}"
        )


class ClosedStoreError(StateError):
    """Raised when a closed store is used."""

    def __init__(self, message: str = "Operation on a closed state store"):
        """Initialize with message."""
        super().__init__(message)


class ReservedCharacterError(StateError, ValueError):
    """Raised when a key or namespace is empty or uses the separator."""

    def __init__(self, kind: str, name: object, separator: str):
        """Initialize with the kind of name and the rejected value."""
        self.kind = kind
        self.name = name
        super().__init__(
            f"Invalid {kind} {name!r}: must be a non-empty string "
            f"without {separator!r}"
        )


class SerializationError(StateError, TypeError):
    """Raised when a value is not JSON-serializable."""

    def __init__(self, key: str, details: str = ""):
        """Initialize with key and details."""
        self.key = key
        message = f"Cannot serialize value for {key!r}"
        if details:
            message += f": {details}"
        super().__init__(message)


class ConfigError(StateError, ValueError):
    """Raised when the store configuration is invalid."""

    pass
