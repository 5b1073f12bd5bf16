"""Parse Rust-like type strings into TypeRef trees.

Grammar (whitespace-insensitive, lifetimes ignored):

    type   := '&' ['mut'] type
            | '*' ('const' | 'mut') type
            | '[' type [';' INT] ']'
            | '(' [type (',' type)* [',']] ')'
            | ['dyn' | 'impl'] path
    path   := IDENT ('::' IDENT)* ['<' type (',' type)* '>']
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from seqforge.catalog.models import TypeKind, TypeRef
from seqforge.exceptions import TypeParseError

PRIMITIVE_NAMES = frozenset({
    "bool", "char", "str",
    "i8", "i16", "i32", "i64", "i128", "isize",
    "u8", "u16", "u32", "u64", "u128", "usize",
    "f32", "f64",
})

_TOKEN_RE = re.compile(r"\s*(::|[&*<>,;()\[\]]|'[A-Za-z_]\w*|[A-Za-z_]\w*|\d+)")


def _tokenize(text: str) -> list[tuple[str, int]]:
    tokens: list[tuple[str, int]] = []
    pos = 0
    while pos < len(text):
        if text[pos:].strip() == "":
            break
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise TypeParseError(text, pos, f"unexpected character {text[pos]!r}")
        tok = m.group(1)
        if not tok.startswith("'"):  # drop lifetimes
            tokens.append((tok, m.start(1)))
        pos = m.end()
    return tokens


class _TypeParser:
    def __init__(self, text: str, generics: Iterable[str]) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0
        self.generics = set(generics)

    def _peek(self) -> str | None:
        return self.tokens[self.pos][0] if self.pos < len(self.tokens) else None

    def _offset(self) -> int:
        return self.tokens[self.pos][1] if self.pos < len(self.tokens) else len(self.text)

    def _next(self) -> str:
        tok = self._peek()
        if tok is None:
            raise TypeParseError(self.text, len(self.text), "unexpected end of input")
        self.pos += 1
        return tok

    def _expect(self, tok: str) -> None:
        offset = self._offset()
        got = self._next()
        if got != tok:
            raise TypeParseError(self.text, offset, f"expected '{tok}', got '{got}'")

    def parse(self) -> TypeRef:
        ty = self._type()
        if self._peek() is not None:
            raise TypeParseError(self.text, self._offset(), f"trailing '{self._peek()}'")
        return ty

    def _type(self) -> TypeRef:
        tok = self._peek()
        if tok == "&":
            self._next()
            mutable = self._peek() == "mut"
            if mutable:
                self._next()
            return TypeRef.ref(self._type(), mutable=mutable)
        if tok == "*":
            self._next()
            offset = self._offset()
            qual = self._next()
            if qual not in ("const", "mut"):
                raise TypeParseError(self.text, offset, "raw pointer needs 'const' or 'mut'")
            return TypeRef(kind=TypeKind.RAW_POINTER, mutable=qual == "mut",
                           args=(self._type(),))
        if tok == "[":
            self._next()
            elem = self._type()
            if self._peek() == ";":
                self._next()
                offset = self._offset()
                length = self._next()
                if not length.isdigit():
                    raise TypeParseError(self.text, offset, "array length must be an integer")
                self._expect("]")
                return TypeRef(kind=TypeKind.ARRAY, args=(elem,), length=int(length))
            self._expect("]")
            return TypeRef(kind=TypeKind.SLICE, args=(elem,))
        if tok == "(":
            self._next()
            items: list[TypeRef] = []
            while self._peek() != ")":
                items.append(self._type())
                if self._peek() == ",":
                    self._next()
                elif self._peek() != ")":
                    raise TypeParseError(self.text, self._offset(), "expected ',' or ')'")
            self._expect(")")
            return TypeRef(kind=TypeKind.TUPLE, args=tuple(items))
        return self._path()

    def _path(self) -> TypeRef:
        offset = self._offset()
        prefix = ""
        if self._peek() in ("dyn", "impl"):
            prefix = self._next() + " "
        first = self._next()
        if not (first[0].isalpha() or first[0] == "_"):
            raise TypeParseError(self.text, offset, f"expected a type, got '{first}'")
        parts = [first]
        while self._peek() == "::":
            self._next()
            parts.append(self._next())
        args: list[TypeRef] = []
        if self._peek() == "<":
            self._next()
            args.append(self._type())
            while self._peek() == ",":
                self._next()
                args.append(self._type())
            self._expect(">")
        name = prefix + "::".join(parts)
        if not prefix and len(parts) == 1 and not args:
            if name in PRIMITIVE_NAMES:
                return TypeRef.primitive(name)
            if name in self.generics:
                return TypeRef.generic(name)
        return TypeRef.path(name, *args)


def parse_type(text: str, generics: Iterable[str] = ()) -> TypeRef:
    """Parse a type string; names listed in `generics` become generic params."""
    return _TypeParser(text, generics).parse()
