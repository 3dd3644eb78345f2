"""Core: domain models, fixed-point math, JSON Schema contracts."""
