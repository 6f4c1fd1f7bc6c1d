class UnwrapError(Exception):
    """Raised when a value is extracted from a variant that does not hold one."""

    def __init__(self, message: str, value: object):
        self.value = value
        super().__init__(message)


class EmptyOptionError(UnwrapError):
    """Raised when unwrap() or expect() is called on an absent Option."""

    def __init__(self, message: str = "Called unwrap on an empty Option"):
        super().__init__(message, None)
