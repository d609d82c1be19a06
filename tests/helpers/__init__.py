"""Test helpers: processor doubles."""
