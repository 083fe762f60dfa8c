"""Shared constants for the matrix_chatgpt package.

This module does not import anything from the internal codebase so every
other module can depend on it without import cycles.
"""

# Identifies this program towards the homeserver (device name) and the
# completion provider (end-user tag on requests).
APP_NAME = "matrix-chatgpt"

# Environment variables
ENV_MATRIX_USERNAME = "MATRIX_USERNAME"
ENV_MATRIX_PASSWORD = "MATRIX_PASSWORD"
ENV_MATRIX_HOMESERVER = "MATRIX_HOMESERVER"
ENV_AUTHORIZED_USERS = "AUTHORIZED_USERS"
ENV_OPENAI_API_KEY = "OPENAI_API_KEY"
ENV_OPENAI_MODEL = "OPENAI_MODEL"
ENV_HISTORY_LIMIT = "HISTORY_LIMIT"
ENV_LOG_LEVEL = "LOG_LEVEL"

# Completion provider
DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"

# Number of timeline events fetched to rebuild the conversation
DEFAULT_HISTORY_LIMIT = 10

# Matrix sync
SYNC_TIMEOUT_MS = 30000
TYPING_TIMEOUT_MS = 30000

# Invite autojoin backoff, in seconds
INVITE_RETRY_INITIAL_DELAY = 2
INVITE_RETRY_FACTOR = 2
INVITE_RETRY_MAX_DELAY = 3600
