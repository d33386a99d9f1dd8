"""Configuration defaults for Troll."""

# Default provider
DEFAULT_PROVIDER = "openai"

# OpenAI defaults
DEFAULT_OPENAI_MODEL = "gpt-5-nano"
DEFAULT_TEMPERATURE = 1.0

# Image generation defaults
DEFAULT_IMAGE_MODEL = "dall-e-3"
DEFAULT_IMAGE_SIZE = "1024x1024"

# Ollama defaults
DEFAULT_OLLAMA_MODEL = "qwen3:8b"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"

# Conversation memory
WINDOW_SIZE = 10          # messages sent to the LLM per call
MAX_LOG_MESSAGES = 20     # log length that triggers compaction
COMPACT_BATCH = 10        # oldest messages summarized per compaction
SUMMARY_TIMEOUT = 30.0    # seconds

# Agent loop
MAX_TOOL_ITERATIONS = 10

# Sessions
DEFAULT_SESSION_ID = "default"
DEFAULT_DB_PATH = "db.json"

# Tools that need explicit user approval
DEFAULT_GATED_TOOLS = {"generate_image"}

# Personality used when none is given
DEFAULT_PERSONALITY = "assistant"
