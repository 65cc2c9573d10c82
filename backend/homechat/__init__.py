"""HomeChat backend: characters, personas and LLM chat sessions."""

__version__ = "0.1.0"
