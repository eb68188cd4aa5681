"""Store hours exception engine backend."""
