"""Per-frame face triage: detection plus validation."""
