"""Built-in input processors."""
