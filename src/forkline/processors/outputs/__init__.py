"""Built-in output processors."""
