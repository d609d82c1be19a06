"""Built-in transform processors."""
