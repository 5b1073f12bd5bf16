"""Custom exceptions for seqforge."""


class SeqForgeError(Exception):
    """Base exception for all seqforge errors."""


class ConfigError(SeqForgeError):
    """Configuration-related errors."""


class CatalogError(SeqForgeError):
    """Signature catalog loading and validation errors."""


class TypeParseError(CatalogError):
    """Raised when a type string cannot be parsed."""

    def __init__(self, text: str, position: int, reason: str):
        self.text = text
        self.position = position
        super().__init__(f"Cannot parse type '{text}' at offset {position}: {reason}")


class GraphError(SeqForgeError):
    """Dependency graph errors."""


class CorpusMismatchError(SeqForgeError):
    """Raised when a seed corpus was recorded against a different catalog."""

    def __init__(self, function: str):
        self.function = function
        super().__init__(
            f"Seed corpus references '{function}', which the catalog filtered out. "
            f"The corpus and the catalog do not describe the same library."
        )
