"""Configuration, logging, shared models and event plumbing."""
