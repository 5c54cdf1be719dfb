"""HTTP API for invoify backups."""
