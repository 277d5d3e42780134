"""Application configuration with sensible defaults."""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", str(DATA_DIR / "uploads")))
EXPORT_DIR = Path(os.getenv("EXPORT_DIR", str(DATA_DIR / "exports")))
TEMPLATE_DIR = BASE_DIR / "web" / "templates"
STATIC_DIR = BASE_DIR / "web" / "static"

# Server
PORT = int(os.getenv("PORT", "5000"))

# OpenAI-compatible provider (completions + embeddings)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-3.5-turbo")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-ada-002")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60.0"))
COMPLETION_MAX_TOKENS = int(os.getenv("COMPLETION_MAX_TOKENS", "500"))
COMPLETION_TEMPERATURE = float(os.getenv("COMPLETION_TEMPERATURE", "0.7"))

# RAG parameters (character-based)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "2000"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "3"))

# Answer cache
CACHE_TTL_SECONDS = float(os.getenv("CACHE_TTL_SECONDS", "1800"))
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "0"))  # 0 = unbounded

# History logs
HISTORY_MAX_ENTRIES = int(os.getenv("HISTORY_MAX_ENTRIES", "50"))

# Uploaded files
FILE_RETENTION_SECONDS = float(os.getenv("FILE_RETENTION_SECONDS", "1800"))
CLEANUP_INTERVAL_SECONDS = float(os.getenv("CLEANUP_INTERVAL_SECONDS", "60"))
MAX_UPLOAD_FILES = int(os.getenv("MAX_UPLOAD_FILES", "2"))
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", str(10 * 1024 * 1024)))  # 10MB
ALLOWED_EXTENSIONS = {".pdf", ".txt", ".docx"}

# UI & assets
STATIC_VERSION = os.getenv("STATIC_VERSION", "1.0.0")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
