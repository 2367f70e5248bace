"""Configuration constants for nexos_compat."""

# URL Constants
NEXOS_API_BASE_URL = "https://api.nexos.ai/v1"

# API Endpoints
CHAT_COMPLETIONS_PATH = "/chat/completions"
RESPONSES_PATH = "/responses"
MODELS_PATH = "/models"

# Extra output tokens granted on top of a thinking budget
THINKING_OUTPUT_HEADROOM = 4096

# Server-Sent Events
SSE_DATA_PREFIX = "data: "
SSE_DONE = "[DONE]"
SSE_DONE_RECORD = "data: [DONE]\n\n"
SSE_RECORD_SEPARATOR = "\n\n"

# Cache-control marker attached to cacheable content blocks
CACHE_CONTROL_EPHEMERAL = {"type": "ephemeral"}

# Reasoning effort value some clients send to disable reasoning
REASONING_EFFORT_NONE = "none"
