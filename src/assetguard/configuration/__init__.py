"""Configuration package: YAML app config and typed section accessors."""
