"""Fault taxonomy shared by the store, the router and the clipboard layer."""


class KopaError(Exception):
    """Base class for every fault that can be reported back to a client."""

    message = "Internal error"

    def __init__(self, message=None):
        super().__init__(message or self.message)

    def __str__(self):
        return self.args[0] if self.args else self.message


class StorageFault(KopaError):
    """The database could not be read or written."""

    message = "Storage error"


class DecodeFault(KopaError, ValueError):
    """A request payload was malformed or of an unknown type."""

    message = "Invalid request payload"


class NotFound(KopaError, KeyError):
    """A referenced entry has no stored text."""

    message = "Entry not found"


class CapabilityFault(KopaError):
    """The clipboard collaborator failed for a reason other than having no data."""

    message = "Clipboard operation failed"
