"""Core services: settings expressions, pipeline configuration and logging."""
