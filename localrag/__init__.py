"""Local retrieval-augmented generation over plain-text documents."""

__version__ = "0.1.0"
