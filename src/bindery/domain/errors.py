"""Error types raised by adapters and converted into results by the binding engine."""

from __future__ import annotations


class BindingError(RuntimeError):
    """Base class for failures crossing a port boundary."""


class StoreError(BindingError):
    """Binding store read or write failed."""


class TransportError(BindingError):
    """Shared bus call failed or timed out."""


class HashError(BindingError):
    """Content fingerprint could not be computed."""


class SchemaError(ValueError):
    """Class schema violates a structural invariant."""
