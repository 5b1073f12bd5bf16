"""Seed chains from an existing fuzz corpus, and the replay report."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from seqforge.exceptions import SeqForgeError


class SeedChain(BaseModel):
    """An ordered list of function names observed together in a corpus."""

    functions: list[str]
    frequency: int = 1


class ReplayReport(BaseModel):
    """What replaying a corpus reached, and what it did not."""

    chains_total: int = 0
    chains_replayed: int = 0
    sequences: int = 0
    reached: list[str] = Field(default_factory=list)
    # In the corpus but never admitted, with corpus frequency
    unreached: dict[str, int] = Field(default_factory=dict)
    # In the catalog but never mentioned by the corpus
    absent_from_corpus: list[str] = Field(default_factory=list)
    backfilled: list[str] = Field(default_factory=list)

    @property
    def absent_count(self) -> int:
        return len(self.absent_from_corpus)


def load_seed_chains(path: Path) -> list[SeedChain]:
    """Load seed chains from JSON.

    Accepts a list whose items are either `{"functions": [...], "frequency": n}`
    objects or bare lists of names, or an object with a `chains` key holding
    such a list.
    """
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise SeqForgeError(f"Cannot read seed chains from {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("chains", [])
    if not isinstance(data, list):
        raise SeqForgeError(f"Seed file {path} must hold a list of chains")

    chains: list[SeedChain] = []
    try:
        for item in data:
            if isinstance(item, list):
                chains.append(SeedChain(functions=item))
            else:
                chains.append(SeedChain(**item))
    except (TypeError, ValidationError) as e:
        raise SeqForgeError(f"Invalid seed chain in {path}: {e}") from e
    return chains
