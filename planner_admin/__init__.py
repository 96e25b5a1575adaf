"""Query and aggregation core of the planner admin directory."""

__version__ = "0.1.0"
