"""docsearch: chunk and semantically search markdown documentation."""

__version__ = "0.1.0"
