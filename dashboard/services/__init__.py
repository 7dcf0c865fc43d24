"""Content reconciliation, file storage and validation error mapping."""
