"""Work request lifecycle: creation, approval transitions and per-request locking."""
