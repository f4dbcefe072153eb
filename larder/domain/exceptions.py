"""Exceptions raised by the repository core."""


class LarderError(Exception):
    """Base class for all errors raised by larder itself.

    Errors raised by backend hooks are never wrapped in this type; they
    propagate to the caller unchanged.
    """

    pass


class InvalidArgumentError(LarderError, ValueError):
    """Raised when a caller hands the repository an argument it cannot serve.

    The main case is a bulk read with more distinct ids than a single backend
    query may carry. The caller must split the request.
    """

    pass


class ConstructionError(LarderError):
    """Raised when a repository is built without a required collaborator."""

    pass


class PolicyReleasedError(LarderError, RuntimeError):
    """Raised when a cache policy is used after it has been released."""

    pass
