"""Library function signatures: models, type-string parsing and loading."""

from seqforge.catalog.models import (
    FunctionKind,
    FunctionSignature,
    TypeKind,
    TypeRef,
    Visibility,
)
from seqforge.catalog.parser import parse_type
from seqforge.catalog.core import Catalog, load_catalog

__all__ = [
    "Catalog",
    "FunctionKind",
    "FunctionSignature",
    "TypeKind",
    "TypeRef",
    "Visibility",
    "load_catalog",
    "parse_type",
]
