"""Domain services (puros, sin I/O)."""
