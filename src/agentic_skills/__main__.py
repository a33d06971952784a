"""Allow ``python -m agentic_skills``."""

from agentic_skills.cli.app import app

if __name__ == "__main__":
    app()
