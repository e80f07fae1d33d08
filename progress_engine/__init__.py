"""Progress & scheduling engine: SM-2 review scheduling, node status/mastery projections and ranked ladder."""

__version__ = "0.1.0"
