"""Drive a web chat UI across an image x model matrix and record one CSV row per pair."""

__version__ = "0.1.0"
