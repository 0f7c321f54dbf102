"""VintageVision expert escalation and AI accuracy evaluation."""

__version__ = "0.1.0"
