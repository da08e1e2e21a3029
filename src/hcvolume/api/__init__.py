"""Docker volume plugin protocol API."""
