"""Core engine: task records, local store, remote adapters and sync."""
