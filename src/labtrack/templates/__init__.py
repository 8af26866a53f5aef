"""Built-in HTML templates."""
