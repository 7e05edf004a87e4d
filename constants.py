"""Shared constants for the PromptCraft service."""

SERVICE_VERSION = "0.4.0"
USER_AGENT = f"promptcraft/{SERVICE_VERSION}"

DEFAULT_CUSTOM_ENDPOINT = "https://api.openai.com/v1"
DEFAULT_BUILTIN_ENDPOINT = "https://api.openai.com/v1"
DEFAULT_CUSTOM_MODEL = "gpt-4"
DEFAULT_BUILTIN_MODEL = "gpt-4o"
DEFAULT_BUILTIN_TITLE_MODEL = "gpt-4o-mini"
BUILTIN_MODELS = ("gpt-4o-mini", "gpt-4o")
DEFAULT_CUSTOM_TIMEOUT = 30.0
DEFAULT_BUILTIN_TIMEOUT = 60.0
DEFAULT_SETTINGS_PATH = "~/.promptcraft/settings.json"

DEFAULT_TEMPERATURE = 0.7
TITLE_TEMPERATURE = 0.5
TITLE_MAX_TOKENS = 50
TITLE_MAX_CHARS = 20
FALLBACK_TITLE_CHARS = 30
FALLBACK_TITLE_SUFFIX = "..."

SSE_DATA_FIELD = "data"
SSE_FIELDS = frozenset({"data", "event", "id", "retry"})
SSE_DONE = "[DONE]"
STREAM_CONTENT_TYPE = "text/event-stream"

ERROR_ENTITLEMENT_DENIED = "entitlement_denied"
BUILTIN_NOT_CONFIGURED = (
    "The built-in service is not configured. Switch to a custom backend in "
    "settings and enter your own API key."
)
CUSTOM_KEY_MISSING = "No API key is configured for the custom backend. Enter one in settings."
