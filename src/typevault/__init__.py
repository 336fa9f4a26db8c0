"""typevault: typed markdown vault schema resolver, auditor and migration planner."""

__version__ = "0.1.0"
