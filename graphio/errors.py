from __future__ import annotations


class ExtractionError(RuntimeError):
    """Base class for every failure raised while turning an export into game data."""


class MalformedRecord(ExtractionError):
    """The token stream ended early, lacks a sentinel, or a field has the wrong shape."""


class SchemaMismatch(ExtractionError):
    """The decoded records do not line up with the declared header counts."""


class UnknownVariant(ExtractionError):
    """A kind/tag token names a variant this decoder does not know."""


class UnresolvedReference(ExtractionError):
    """A record refers to an ID that is absent from the collection it names."""


class NumericParseError(ExtractionError, ValueError):
    pass


class ImageDimensionMismatch(ExtractionError):
    pass


class EmptyDataSet(ExtractionError):
    pass
