"""Typed errors raised by the pantry services."""


class PantryError(Exception):
    """Base class for pantry tracker errors."""


class NotFoundError(PantryError):
    """Entity is absent or not owned by the requester."""


class ProductNotFoundError(NotFoundError):
    """No product could be found or created for the request."""


class LocationNotFoundError(NotFoundError):
    """Inventory location is missing, removed, or owned by another user."""


class InvalidQuantityError(PantryError):
    """Quantity must be a positive number."""


class InvalidTransitionError(PantryError):
    """Inventory location is in a terminal state."""


class DuplicateBarcodeError(PantryError):
    """A product with the same barcode already exists."""


class UpstreamUnavailableError(PantryError):
    """External catalog or generative model failed or timed out."""


class InfrastructureError(PantryError):
    """Relational store request failed."""
