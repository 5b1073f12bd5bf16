"""Type-compatibility oracle, start/end conventions and generic substitution."""

from seqforge.oracle.base import (
    AccessMode,
    FixedTypeSubstitution,
    FunctionConventions,
    FuzzableEncoding,
    SubstitutionPolicy,
    TypeOracle,
    substitute_type,
)
from seqforge.oracle.rust import RustConventions, RustTypeOracle

__all__ = [
    "AccessMode",
    "FixedTypeSubstitution",
    "FunctionConventions",
    "FuzzableEncoding",
    "RustConventions",
    "RustTypeOracle",
    "SubstitutionPolicy",
    "TypeOracle",
    "substitute_type",
]
