"""SQLite-backed repositories and the HTTP LLM provider."""
