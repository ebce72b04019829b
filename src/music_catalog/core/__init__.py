"""Core catalog logic: scanning, metadata, sync and library queries."""
