import os
import logging
from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Configure logging
logger = logging.getLogger(__name__)

# Database configuration
DATABASE_NAME = os.getenv("MONGODB_DATABASE", "embedquery")
_DEFAULT_MONGODB_URI = "mongodb://localhost:27017"

def _resolve_mongo_uri() -> str:
    """Resolve the MongoDB connection string with sane fallbacks."""
    candidates = [
        os.getenv("MONGODB_URI"),
        os.getenv("MONGODB_CONNECTION_STRING"),
    ]

    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()

    if any(candidate == "" for candidate in candidates):
        logger.warning("MONGODB connection string env var was empty; falling back to default URI.")

    return _DEFAULT_MONGODB_URI

MONGODB_CONNECTION_STRING = _resolve_mongo_uri()

def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer; using default {default}.")
        return default

# Longest dotted path accepted in $embed. Every hop of the resolver consumes at
# least one segment, so this also bounds the walk across cyclic references.
MAX_EMBED_DEPTH: int = _int_env("EMBEDQUERY_MAX_EMBED_DEPTH", 16)

# Optional JSON schema declaration for load_schema_registry()
SCHEMA_PATH = os.getenv("EMBEDQUERY_SCHEMA_PATH") or None

# --- Query descriptor vocabulary ---
RESERVED_PREFIX = "$"
DESCENDING_PREFIX = "-"
EMBED_KEY = "$embed"
SORT_KEY = "$sort"
SKIP_KEY = "$skip"
LIMIT_KEY = "$limit"

# --- Pipeline vocabulary ---
ID_FIELD = "_id"
COUNT_FIELD = "count"
CONTENT_FACET = "content"
TOTAL_COUNT_FACET = "totalCount"


def str_to_object_id(id_str: str) -> ObjectId:
    """Convert a hex identifier string to a BSON ObjectId.

    Owner identifiers arrive as strings from the request layer and must match
    the native `_id` type stored in the collection.
    """
    if isinstance(id_str, ObjectId):
        return id_str
    if not isinstance(id_str, str) or not id_str:
        raise ValueError("id_str must be a non-empty string")

    # Strip surrounding quotes if present (handles JSON-serialized ids)
    cleaned = id_str.strip().strip('"\'')

    try:
        return ObjectId(cleaned)
    except (InvalidId, TypeError) as e:
        raise ValueError(f"Invalid ObjectId format '{id_str}': {e}") from e
