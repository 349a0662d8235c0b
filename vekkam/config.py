"""
Vekkam Configuration Module
Centralized configuration for the study engine.

All values are process-wide and read-only once the module is imported.
Retrieval tuning can be overridden from config/retrieval.yaml.
"""

import os
from pathlib import Path

import yaml

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "Vekkam"
APPDATA_DIR = Path(os.environ.get('VEKKAM_HOME', os.path.expanduser(f'~/.config/{APP_NAME}')))
LOGS_DIR = APPDATA_DIR / "logs"
DATA_DIR = APPDATA_DIR / "data"

# Ensure directories exist (read-only homes just skip file logging)
for directory in [APPDATA_DIR, LOGS_DIR, DATA_DIR]:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass

# Logging Configuration
LOG_FILE = LOGS_DIR / "vekkam.log"
DEBUG_LOG_FILE = LOGS_DIR / "debug_flow.txt"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# ============================================================================
# Generation Backends
# ============================================================================

# Primary: Hugging Face Inference (text-generation task)
HF_TOKEN = os.environ.get('HF_TOKEN', '')
HF_MODEL_ID = os.environ.get('HF_MODEL_ID', "Sambit-Mishra/vekkam-v0")
HF_API_BASE = os.environ.get('HF_API_BASE', "https://router.huggingface.co/models")
HF_MAX_NEW_TOKENS = 1500  # Generous limit for detailed notes
HF_TEMPERATURE = 0.7

# Secondary: Llama inference endpoint
LLAMA_API_KEY = os.environ.get('LLAMA_API_KEY', '')
LLAMA_API_URL = os.environ.get('LLAMA_API_URL', "https://inference-llm.onrender.com/generate")
LLAMA_MODEL_NAME = "llama-3.3-70b-instruct"

# Per-call timeouts (seconds). Neither backend bounds its own latency.
PRIMARY_TIMEOUT_SECONDS = float(os.environ.get('VEKKAM_TIMEOUT_SECONDS', 120))
SECONDARY_TIMEOUT_SECONDS = 45.0

# Exam-first persona used when the caller supplies no system instruction
DEFAULT_SYSTEM_INSTRUCTION = """You are Vekkam, a ruthless exam-first study engine.
Your goal is to save the student before their exam ruins their life.
Do not be overly conversational. Be decisive.

OPTIMIZATION STRATEGIES:
1. Structural Compression: Kill English, keep meaning. Use structured formats (JSON/Bullets) for facts.
2. Reasoning Sketches: Use bullet logic (A → B) instead of verbose explanations.
3. High-Yield Only: If a concept is fluff, cut it.

If a concept is complex, break it into battle units.
Always prioritize questions as the primary teaching tool."""

# ============================================================================
# Context Retrieval Configuration
# ============================================================================

# Token budget is approximated as characters / 4
CHARS_PER_TOKEN = 4
CONTEXT_MAX_CHARS = 6000          # Prompt context budget for quiz and Q&A
DEDUP_SIMILARITY_THRESHOLD = 0.85  # Jaccard above this = near-duplicate
# Once this many characters are gathered, zero-score candidates are skipped
ZERO_SCORE_PRUNE_CHARS = 1000
COLD_START_SOURCE_COUNT = 3        # Sources used verbatim when no keywords exist

# Paragraph scoring
MIN_SIGNIFICANT_WORD_LENGTH = 4
MIN_SIGNIFICANT_WORDS = 5          # Fewer significant words = fragment, score 0
PRIMARY_KEYWORD_WEIGHT = 3.0
SECONDARY_KEYWORD_WEIGHT = 1.0
ACTIVE_NOTE_BOOST = 1.5

# Per-kind multipliers applied in multi-source retrieval
SOURCE_KIND_WEIGHTS = {
    'note': 1.0,
    'paragraph': 1.0,
    'conversation': 1.0,
    'achievement': 1.0,
}

NO_RELEVANT_CONTEXT_SENTINEL = "No high-relevance study material found for this question."

# Conversation turns folded into secondary keywords for follow-up questions
QA_CONVERSATION_CONTEXT_PAIRS = 3

# ============================================================================
# Study Material Synthesis Configuration
# ============================================================================

CHUNK_MAX_CHARS = 2000             # Segment size for the extraction pass
CHUNK_PROMPT_MAX_CHARS = 1500      # Slice of each chunk sent to the backend
MERGED_EXTRACTION_MAX_CHARS = 15000
SYNTHESIS_UNIT_COUNT = 5
OUTLINE_CHUNK_LIMIT = 20           # Chunks described in the outline prompt
OUTLINE_SNIPPET_CHARS = 200

# Bounded worker pool for the per-chunk extraction pass
PARALLEL_MAX_WORKERS = 5

# Quiz generation
QUIZ_QUESTION_COUNT = 5
QUIZ_CONTEXT_MAX_CHARS = 6000

# ============================================================================
# Retrieval overrides (config/retrieval.yaml)
# ============================================================================

RETRIEVAL_CONFIG_FILE = Path(__file__).parent.parent / "config" / "retrieval.yaml"
RETRIEVAL_CONFIG = {}


def load_retrieval_config(path: Path = None) -> dict:
    """Loads retrieval overrides from config/retrieval.yaml."""
    global RETRIEVAL_CONFIG
    path = path or RETRIEVAL_CONFIG_FILE
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        section = data.get('retrieval') if isinstance(data, dict) else None
        RETRIEVAL_CONFIG = section if isinstance(section, dict) else {}
    except FileNotFoundError:
        RETRIEVAL_CONFIG = {}
    except (OSError, yaml.YAMLError):
        RETRIEVAL_CONFIG = {}
    return RETRIEVAL_CONFIG


def get_retrieval_setting(name: str, default):
    """
    Returns a retrieval setting, preferring the YAML override.

    Args:
        name: Key under the `retrieval:` section (e.g. 'dedup_similarity_threshold')
        default: Value used when the key is absent or has the wrong type

    Returns:
        The configured value, coerced to the type of `default`
    """
    value = RETRIEVAL_CONFIG.get(name)
    if value is None:
        return default
    if isinstance(default, dict):
        return {**default, **value} if isinstance(value, dict) else default
    try:
        return type(default)(value)
    except (TypeError, ValueError):
        return default


load_retrieval_config()

CONTEXT_MAX_CHARS = get_retrieval_setting('context_max_chars', CONTEXT_MAX_CHARS)
DEDUP_SIMILARITY_THRESHOLD = get_retrieval_setting('dedup_similarity_threshold', DEDUP_SIMILARITY_THRESHOLD)
ZERO_SCORE_PRUNE_CHARS = get_retrieval_setting('zero_score_prune_chars', ZERO_SCORE_PRUNE_CHARS)
PRIMARY_KEYWORD_WEIGHT = get_retrieval_setting('primary_keyword_weight', PRIMARY_KEYWORD_WEIGHT)
SECONDARY_KEYWORD_WEIGHT = get_retrieval_setting('secondary_keyword_weight', SECONDARY_KEYWORD_WEIGHT)
ACTIVE_NOTE_BOOST = get_retrieval_setting('active_note_boost', ACTIVE_NOTE_BOOST)
SOURCE_KIND_WEIGHTS = get_retrieval_setting('source_kind_weights', SOURCE_KIND_WEIGHTS)
