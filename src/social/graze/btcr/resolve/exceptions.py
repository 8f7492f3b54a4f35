from typing import Optional


class ResolutionException(Exception):
    """Base class for every failure that aborts a did:btcr resolution."""


class InvalidIdentifier(ResolutionException):
    """The method-specific identifier is not a valid txref."""


class ResolutionFailed(ResolutionException):
    """A blockchain lookup failed while following the spend chain.

    Carries the transaction id (or txref, before the first transaction is known) that was being looked up.
    """

    def __init__(self, message: str, location: Optional[str] = None) -> None:
        super().__init__(message)
        self.location = location


class ContinuationUnreachable(ResolutionException):
    """The continuation document could not be retrieved."""


class ContinuationMalformed(ResolutionException):
    """The continuation document is not a usable DID document."""
