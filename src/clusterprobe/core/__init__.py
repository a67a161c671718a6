"""Core domain: models, classification, scheduling and ports."""
