"""Domain errors raised by repositories and services.

Controllers translate these into HTTP responses; nothing here knows
about HTTP.
"""


class UserNotFoundError(LookupError):
    """No user matched the requested key."""

    def __init__(self, key):
        super().__init__(f"user not found: {key}")
        self.key = key


class AmbiguousLookupError(LookupError):
    """A lookup by a non-key field matched more than one user."""

    def __init__(self, field: str, value):
        super().__init__(f"more than one user has {field}={value!r}")
        self.field = field
        self.value = value
