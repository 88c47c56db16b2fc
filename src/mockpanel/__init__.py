"""MockPanel: multi-agent interview practice with streamed text and speech."""

__version__ = "0.1.0"
