"""Exceptions raised by FieldLog.

Only hard failures are exceptions. A missing taxobox field is an ordinary
``None`` from the parser, and a sighting for an unknown species is a
``False`` from the catalog.
"""


class FieldLogError(Exception):
    """Base class for FieldLog errors."""


class NoCommonNamesFound(FieldLogError):
    """The summary fragment has no bold spans, so the page is not a usable match."""


class LookupFailed(FieldLogError):
    """A lookup against an external source failed at the transport level."""

    def __init__(self, message: str, names=None):
        super().__init__(message)
        self.names = list(names or [])


class TaxonomyLookupFailed(LookupFailed):
    """The encyclopedia lookup could not be completed."""


class PhotoLookupFailed(LookupFailed):
    """The photo lookup could not be completed."""
