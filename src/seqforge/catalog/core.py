"""The signature catalog: an ordered, filtered set of callable functions."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from seqforge.catalog.models import FunctionSignature, Visibility
from seqforge.exceptions import CatalogError

if TYPE_CHECKING:
    from seqforge.oracle.base import SubstitutionPolicy, TypeOracle

logger = logging.getLogger("seqforge.catalog")

# Standard-library types whose inherent methods never belong to the library under test
PRELUDE_TYPES = frozenset({
    "Option", "Result", "Vec", "String", "Box", "Rc", "Arc", "HashMap", "HashSet",
})


class Catalog:
    """Ordered function signatures plus a record of what was filtered out.

    Function indexes are positions in `functions` and stay stable once
    filtering is done; the dependency graph and every sequence refer to
    functions by these indexes.
    """

    def __init__(self, library: str = "") -> None:
        self.library = library
        self.functions: list[FunctionSignature] = []
        self.excluded: dict[str, str] = {}  # name -> reason
        self._index: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self.functions)

    def __iter__(self) -> Iterator[FunctionSignature]:
        return iter(self.functions)

    def __getitem__(self, index: int) -> FunctionSignature:
        return self.functions[index]

    @classmethod
    def from_functions(
        cls,
        functions: Iterable[FunctionSignature],
        library: str = "",
        oracle: TypeOracle | None = None,
        policy: SubstitutionPolicy | None = None,
    ) -> Catalog:
        catalog = cls(library)
        for fn in functions:
            catalog.add(fn, oracle, policy)
        return catalog

    def add(
        self,
        fn: FunctionSignature,
        oracle: TypeOracle | None = None,
        policy: SubstitutionPolicy | None = None,
    ) -> bool:
        """Add a function; returns False if it was excluded as unsupported."""
        if fn.name in self._index or fn.name in self.excluded:
            raise CatalogError(f"Duplicate function in catalog: {fn.name}")
        if oracle is not None and self._has_unsupported_fuzzable(fn, oracle, policy):
            self.excluded[fn.name] = "unsupported fuzzable type"
            logger.debug(f"Excluding {fn.name}: unsupported fuzzable parameter")
            return False
        self._index[fn.name] = len(self.functions)
        self.functions.append(fn)
        return True

    @staticmethod
    def _has_unsupported_fuzzable(
        fn: FunctionSignature,
        oracle: TypeOracle,
        policy: SubstitutionPolicy | None,
    ) -> bool:
        from seqforge.oracle.base import substitute_type

        subs = policy.substitutions_for(fn) if policy is not None else dict(fn.substitutions)
        for ty in fn.inputs:
            concrete = substitute_type(ty, subs)
            if concrete is None:
                continue
            encoding = oracle.fuzzable(concrete)
            if encoding is not None and not encoding.encodable:
                return True
        return False

    def filter_visibility(self, invisible_modules: Iterable[str] = ()) -> int:
        """Drop non-public functions and anything reachable only through a
        non-public module or trait. Returns the number removed."""
        invisible = [m for m in invisible_modules if m]

        def reason(fn: FunctionSignature) -> str | None:
            if fn.visibility != Visibility.PUBLIC:
                return f"visibility {fn.visibility.value}"
            for mod in invisible:
                if fn.name.startswith(mod):
                    return f"module {mod} is not visible"
                if fn.trait_path and fn.trait_path.startswith(mod):
                    return f"trait {fn.trait_path} is not visible"
            return None

        return self._retain(reason)

    def filter_prelude_methods(self, prelude_types: Iterable[str] = PRELUDE_TYPES) -> int:
        """Drop methods defined on standard prelude types (Option::map etc.)."""
        prelude = set(prelude_types)

        def reason(fn: FunctionSignature) -> str | None:
            parts = fn.name.split("::")
            if len(parts) >= 2 and parts[-2] in prelude:
                return f"defined on prelude type {parts[-2]}"
            return None

        return self._retain(reason)

    def _retain(self, reason_fn) -> int:
        kept: list[FunctionSignature] = []
        removed = 0
        for fn in self.functions:
            reason = reason_fn(fn)
            if reason is None:
                kept.append(fn)
            else:
                self.excluded[fn.name] = reason
                removed += 1
        self.functions = kept
        self._index = {fn.name: i for i, fn in enumerate(kept)}
        if removed:
            logger.info(f"Filtered {removed} function(s); {len(kept)} remain")
        return removed

    def index_of(self, name: str) -> int | None:
        return self._index.get(name)

    def knows(self, name: str) -> bool:
        """Whether the name was ever seen, including filtered-out functions."""
        return name in self._index or name in self.excluded


def load_catalog(
    path: str | Path,
    oracle: TypeOracle | None = None,
    policy: SubstitutionPolicy | None = None,
) -> Catalog:
    """Load a catalog from JSON: {"library": str, "functions": [...]}.

    Functions use the FunctionSignature schema; types may be given as
    Rust-like strings ("&mut Handle", "Vec<u8>").
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except OSError as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Invalid JSON in catalog {path}: {e}") from e

    if isinstance(data, list):
        data = {"functions": data}
    if not isinstance(data, dict) or not isinstance(data.get("functions"), list):
        raise CatalogError(f"Catalog {path} must contain a 'functions' list")

    try:
        functions = [FunctionSignature.model_validate(f) for f in data["functions"]]
    except ValidationError as e:
        raise CatalogError(f"Invalid function signature in {path}: {e}") from e

    catalog = Catalog.from_functions(
        functions, library=data.get("library", path.stem), oracle=oracle, policy=policy,
    )
    logger.info(f"Loaded {len(catalog)} function(s) from {path}")
    return catalog
