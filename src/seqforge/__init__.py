"""seqforge - synthesize fuzz driver call sequences from library signatures."""

__version__ = "0.1.0"
