"""Command-line interface for agentic-skills."""
