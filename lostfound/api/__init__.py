"""HTTP surface for the work request service."""
