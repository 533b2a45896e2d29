"""Delegation of prompts to provider CLIs with session-scoped working directories."""
