"""Course content and exercise extraction."""
