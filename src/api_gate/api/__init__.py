"""HTTP routes and request gates."""
