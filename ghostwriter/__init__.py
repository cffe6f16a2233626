"""ghostwriter: plan, write and edit long-form documents with cooperating LLM roles."""

__version__ = "0.1.0"
