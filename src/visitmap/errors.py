"""Exception hierarchy shared by the registry, its collaborators and the API."""


class VisitMapError(Exception):
    """Base exception for all visit-map errors."""


class ValidationError(VisitMapError, ValueError):
    """Raised when a required field is missing or an outcome set is empty."""


class GeocodeError(VisitMapError):
    """Raised when an address cannot be geocoded or the geocoder is unreachable."""


class NotFoundError(VisitMapError, LookupError):
    """Raised when an address id is not known to the registry."""


class StoreError(VisitMapError):
    """Raised when the document store rejects or fails a write or read."""
