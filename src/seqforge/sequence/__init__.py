"""Call sequences, the admission rule and fuzzer byte budgets."""

from seqforge.sequence.admission import Admission
from seqforge.sequence.budget import ByteBudget, ByteSlice
from seqforge.sequence.models import (
    AccessState,
    Arg,
    ArgSource,
    Call,
    CallChain,
    FuzzableParam,
    Sequence,
    merge_sequences,
)

__all__ = [
    "AccessState",
    "Admission",
    "Arg",
    "ArgSource",
    "ByteBudget",
    "ByteSlice",
    "Call",
    "CallChain",
    "FuzzableParam",
    "Sequence",
    "merge_sequences",
]
