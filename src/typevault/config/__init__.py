"""Configuration: typevault.toml discovery, section models, settings, logging."""
