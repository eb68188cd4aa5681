"""Domain services for store hours."""
