"""Application configuration with sensible defaults."""
import os
from pathlib import Path

# Paths
DOCS_DIR = Path(os.getenv("DOCS_DIR", "docs"))
DATA_DIR = Path(os.getenv("DATA_DIR", "data"))

# Vector index
COLLECTION_NAME = os.getenv("COLLECTION_NAME", "context1000")

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "nomic-embed-text")
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "60.0"))
EMBEDDING_BATCH_SIZE = int(os.getenv("EMBEDDING_BATCH_SIZE", "10"))

# Chunking parameters (token budgets are estimates, see rag/tokens.py)
MAX_CHUNK_TOKENS = int(os.getenv("MAX_CHUNK_TOKENS", "800"))
OVERLAP_TOKENS = int(os.getenv("OVERLAP_TOKENS", "150"))
WORDS_PER_TOKEN = 0.75
TOKENS_PER_WORD = 1.3

# Search
DEFAULT_MAX_RESULTS = int(os.getenv("DEFAULT_MAX_RESULTS", "10"))
MAX_RESULTS_LIMIT = 50

# Server
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "5001"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
