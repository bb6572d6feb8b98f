"""Exception hierarchy for docsearch."""


class DocSearchError(Exception):
    """Base class for all docsearch errors."""


class ConfigurationError(DocSearchError):
    """Invalid configuration, rejected at startup."""


class FrontMatterError(DocSearchError):
    """Front matter block could not be parsed into a mapping."""


class IndexNotInitializedError(DocSearchError):
    """The document index was used before initialize() was awaited."""


class ProjectNotFoundError(DocSearchError):
    """Requested project directory (or its project.md) does not exist."""


class EmbeddingError(DocSearchError):
    """The embedding provider failed or returned an unusable vector."""


class DuplicateChunkError(DocSearchError):
    """A chunk id is already present in the collection."""
