"""Domain layer: schema models, resolution, audit rules and migration diffing.

This layer depends only on stdlib, pydantic and NetworkX (the extends graph).
It must never import from services, infrastructure, commands, or config.
"""
