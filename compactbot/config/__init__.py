"""Configuration module for compactbot."""
