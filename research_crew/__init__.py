"""Research Crew: multi-agent conversational workflows with tool calling."""

__version__ = "1.0.0"
