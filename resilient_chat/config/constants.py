"""
Retry and session defaults

Central location for the numeric defaults used by the retry engine,
the chat session and the bundled content generator. Runtime overrides
come from environment variables (see config/settings.py).
"""

# Network retry budget (per logical request)
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY_MS = 5000
DEFAULT_MAX_DELAY_MS = 30000  # 30 seconds

# Symmetric jitter applied to exponential backoff delays (+/- 30%)
BACKOFF_JITTER_RATIO = 0.3

# Invalid-content retry budget: 1 initial call + 1 retry, linear delay
INVALID_CONTENT_MAX_ATTEMPTS = 2
INVALID_CONTENT_INITIAL_DELAY_MS = 500

# Structured API error unwrapping
MAX_ERROR_UNWRAP_DEPTH = 10
MAX_ERROR_CAUSE_DEPTH = 5

# Server-suggested delays used when the payload does not carry one
RATE_LIMIT_EXCEEDED_DEFAULT_DELAY_S = 10
PER_MINUTE_QUOTA_DELAY_S = 60

# Placeholder accepted by preview-tier models in lieu of a real signature
SYNTHETIC_THOUGHT_SIGNATURE = "skip_thought_signature_validator"

# Bundled Gemini REST generator
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_CONNECT_TIMEOUT_S = 30.0
DEFAULT_READ_TIMEOUT_S = 300.0

# Environment variables
ENV_PREFIX = "RESILIENT_CHAT_"
API_KEY_ENV_VAR = "GEMINI_API_KEY"
