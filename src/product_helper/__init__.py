"""Product Helper - planning assistant for objectives, epics and stories."""

__version__ = "0.3.0"
