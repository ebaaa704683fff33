"""Errors raised while building, typing and (de)serializing trees."""

from primitives.vlq import DecodeError

__all__ = ["DecodeError", "SerializationError", "TypeCheckError"]


class TypeCheckError(ValueError):
    """An expression node was constructed with ill-typed children."""


class SerializationError(ValueError):
    """A value or node has no binary representation."""
