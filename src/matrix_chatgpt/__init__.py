"""matrix-chatgpt: a Matrix bot that relays room conversations to a chat-completion model."""

from importlib.metadata import version

__version__ = version("matrix-chatgpt")
