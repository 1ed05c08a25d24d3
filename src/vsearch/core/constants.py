"""Default model names and constants."""

from pathlib import Path

# Default models (OpenAI-compatible)
DEFAULT_TRANSCRIBE_MODEL = "whisper-1"
DEFAULT_EMBED_MODEL = "text-embedding-3-small"
DEFAULT_CHAT_MODEL = "gpt-4.1"
DEFAULT_API_MAX_RETRIES = 4

# Paths
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "vsearch"
CONFIG_FILE_PATH = DEFAULT_CONFIG_DIR / "config.json"
INDEX_RELATIVE_PATH = Path(".vsearch") / "video-library-index.json"
INDEX_VERSION = 2

# Catalog
DEFAULT_MAX_STALENESS_MS = 20_000
MAX_PERSISTED_SEGMENTS = 10_000
MAX_TRANSCRIPT_SEGMENTS = 12_000
MAX_TAGS = 20
MAX_TERM_TAGS = 8
DOCUMENT_TRANSCRIPT_PREVIEW_CHARS = 5000
SIDECAR_SUFFIXES = (".transcript.json", ".json", ".txt", ".srt", ".vtt")
MIN_SECONDS_PER_DERIVED_SEGMENT = 4

# Chunking
CHUNK_MAX_SPAN_SEC = 55
CHUNK_MAX_WORDS = 165
CHUNK_MAX_CHARS = 750
SYNTHETIC_CHUNK_SEC = 60
DEFAULT_MAX_CHUNKS_PER_VIDEO = 26
CHUNK_KEY_TEXT_PREFIX = 700
CHUNK_KEY_HASH_CHARS = 18

# Vector cache
VIDEO_EMBED_BATCH_SIZE = 48
CHUNK_EMBED_BATCH_SIZE = 64
MAX_CHUNK_CACHE_ENTRIES = 20_000

# Search payload
SNIPPET_CHARS = 420
FALLBACK_SNIPPET_CHARS = 320
MAX_FALLBACK_RESULTS = 10
MAX_RELATED_RESULTS = 6
MAX_RECOVERY_RESULTS = 4
MAX_SUGGESTED_QUERIES = 6
RECOVERY_MIN_LEXICAL = 0.16
RECOVERY_RESULT_THRESHOLD = 3
SORT_MODES = ("relevance", "duration", "title", "newest")
TRANSCRIBE_MODES = ("skip", "auto", "force")

# Ingestion
DEFAULT_TRANSCRIBE_CHUNK_SEC = 540
MIN_TRANSCRIBE_CHUNK_SEC = 120
MAX_TRANSCRIBE_CHUNK_SEC = 1200
AUDIO_BITRATE_KBPS = 32
FALLBACK_AUDIO_BITRATE_KBPS = 16
MAX_AUDIO_CHUNK_BYTES = 24 * 1024 * 1024  # stays under the 25MB Whisper upload limit
DEFAULT_AUTO_TRANSCRIBE_MAX_MINUTES = 35

# Provider presets
PROVIDER_PRESETS: dict[str, dict[str, str]] = {
    "openai": {
        "api_base_url": "https://api.openai.com/v1",
        "transcribe_model": "whisper-1",
        "embed_model": "text-embedding-3-small",
        "chat_model": "gpt-4.1",
    },
    "anthropic": {
        "api_base_url": "https://api.anthropic.com/v1/",
        "transcribe_model": "",
        "embed_model": "",
        "chat_model": "claude-sonnet-4-5-20250929",
    },
    "gemini": {
        "api_base_url": "https://generativelanguage.googleapis.com/v1beta/openai/",
        "transcribe_model": "",
        "embed_model": "text-embedding-004",
        "chat_model": "gemini-2.5-flash",
    },
}

# Video extensions
VIDEO_EXTENSIONS = {".mp4", ".mov", ".m4v", ".webm", ".mkv"}

# Filename classification rules: (pattern, tag). Patterns are matched case-insensitively.
TAG_RULES: list[tuple[str, str]] = [
    (r"\blogos\b", "Logos"),
    (r"\bsermon|preach|homiletics\b", "Sermon Prep"),
    (r"\bresearch|paper|bibliography|citation\b", "Research"),
    (r"\bgreek|hebrew|syntax|morphology|word study\b", "Original Languages"),
    (r"\bai|assistant|new logos\b", "AI"),
    (r"\bbible study|study\b", "Bible Study"),
    (r"\bworkflow|setup\b", "Workflow"),
]

# First matching rule wins; anything else falls back to DEFAULT_CATEGORY.
CATEGORY_RULES: list[tuple[str, str]] = [
    (r"\bsermon|preach|homiletics\b", "Sermon Prep"),
    (r"\bgreek|hebrew|syntax|word study|morphology\b", "Original Languages"),
    (r"\bresearch|paper|citation|bibliography\b", "Research"),
    (r"\bai\b|new logos", "AI Features"),
]
DEFAULT_CATEGORY = "Logos Basics"

DIFFICULTY_RULES: list[tuple[str, str]] = [
    (r"\bbeginner|intro|introduction|start|basics\b", "Beginner"),
    (r"\badvanced|expert|research|syntax|morphology|deep\b", "Advanced"),
]
DEFAULT_DIFFICULTY = "Intermediate"

TOPIC_BY_CATEGORY: dict[str, str] = {
    "Sermon Prep": "Sermon Workflow",
    "Original Languages": "Word Study",
    "Research": "Academic Research",
}
DEFAULT_TOPIC = "Logos Training"

VERSION_PATTERN = r"\blogos\s*(\d{1,2})\b"
VERSION_ALIASES: list[tuple[str, str]] = [(r"\bnew logos\b", "Logos 10")]
DEFAULT_VERSION_TAG = "General"
