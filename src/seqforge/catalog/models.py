"""Data models for library function signatures and their types."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TypeKind(str, Enum):
    """Structural shapes a type can take."""

    PRIMITIVE = "primitive"
    PATH = "path"
    REFERENCE = "reference"
    RAW_POINTER = "raw_pointer"
    SLICE = "slice"
    ARRAY = "array"
    TUPLE = "tuple"
    GENERIC = "generic"


class TypeRef(BaseModel):
    """A structural type description.

    Only the type oracle looks inside one of these; everything else treats
    it as an opaque, hashable value.
    """

    model_config = ConfigDict(frozen=True)

    kind: TypeKind
    name: str = ""  # primitive name, path, or generic parameter name
    mutable: bool = False  # references and raw pointers only
    args: tuple[TypeRef, ...] = ()  # pointee, element, tuple items or generic args
    length: int | None = None  # arrays only

    @classmethod
    def primitive(cls, name: str) -> TypeRef:
        return cls(kind=TypeKind.PRIMITIVE, name=name)

    @classmethod
    def path(cls, name: str, *args: TypeRef) -> TypeRef:
        return cls(kind=TypeKind.PATH, name=name, args=args)

    @classmethod
    def ref(cls, inner: TypeRef, mutable: bool = False) -> TypeRef:
        return cls(kind=TypeKind.REFERENCE, mutable=mutable, args=(inner,))

    @classmethod
    def generic(cls, name: str) -> TypeRef:
        return cls(kind=TypeKind.GENERIC, name=name)

    @property
    def inner(self) -> TypeRef | None:
        """The pointee/element type, if this shape has exactly one."""
        if self.kind in (TypeKind.REFERENCE, TypeKind.RAW_POINTER,
                         TypeKind.SLICE, TypeKind.ARRAY) and len(self.args) == 1:
            return self.args[0]
        return None

    def __str__(self) -> str:
        if self.kind == TypeKind.REFERENCE:
            return f"&{'mut ' if self.mutable else ''}{self._arg_str(0)}"
        if self.kind == TypeKind.RAW_POINTER:
            return f"*{'mut' if self.mutable else 'const'} {self._arg_str(0)}"
        if self.kind == TypeKind.SLICE:
            return f"[{self._arg_str(0)}]"
        if self.kind == TypeKind.ARRAY:
            return f"[{self._arg_str(0)}; {self.length}]"
        if self.kind == TypeKind.TUPLE:
            items = ", ".join(str(a) for a in self.args)
            return f"({items},)" if len(self.args) == 1 else f"({items})"
        if self.kind == TypeKind.PATH and self.args:
            return f"{self.name}<{', '.join(str(a) for a in self.args)}>"
        return self.name

    def _arg_str(self, i: int) -> str:
        return str(self.args[i]) if len(self.args) > i else "?"


class FunctionKind(str, Enum):
    """How a catalog function is instantiated."""

    BARE = "bare"
    GENERIC = "generic"  # needs instantiation enumeration, never admitted


class Visibility(str, Enum):
    PUBLIC = "public"
    CRATE = "crate"
    PRIVATE = "private"


class FunctionSignature(BaseModel):
    """A callable library function (free function or method)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str  # fully qualified, e.g. "mylib::Builder::new"
    inputs: tuple[TypeRef, ...] = ()
    output: TypeRef | None = None
    generics: tuple[str, ...] = ()
    substitutions: dict[str, TypeRef] = Field(default_factory=dict)
    visibility: Visibility = Visibility.PUBLIC
    trait_path: str | None = None
    is_unsafe: bool = Field(default=False, alias="unsafe")
    kind: FunctionKind = FunctionKind.BARE

    @model_validator(mode="before")
    @classmethod
    def _parse_type_strings(cls, data: Any) -> Any:
        """Accept Rust-like type strings anywhere a TypeRef is expected."""
        if not isinstance(data, dict):
            return data
        from seqforge.catalog.parser import parse_type

        generics = tuple(data.get("generics") or ())
        data = dict(data)
        if "inputs" in data:
            data["inputs"] = [
                parse_type(t, generics) if isinstance(t, str) else t
                for t in data["inputs"] or ()
            ]
        if isinstance(data.get("output"), str):
            data["output"] = parse_type(data["output"], generics)
        if data.get("substitutions"):
            data["substitutions"] = {
                k: parse_type(v) if isinstance(v, str) else v
                for k, v in data["substitutions"].items()
            }
        return data

    @property
    def short_name(self) -> str:
        return self.name.rsplit("::", 1)[-1]

    def pretty(self) -> str:
        """Render as a Rust-like signature line."""
        generics = f"<{', '.join(self.generics)}>" if self.generics else ""
        params = ", ".join(str(t) for t in self.inputs)
        ret = f" -> {self.output}" if self.output is not None else ""
        prefix = "unsafe fn" if self.is_unsafe else "fn"
        return f"{prefix} {self.name}{generics}({params}){ret}"


TypeRef.model_rebuild()
FunctionSignature.model_rebuild()
