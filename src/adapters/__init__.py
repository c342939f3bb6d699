"""Adapters binding the core ports to Discord, SQLite and OpenAI."""
