"""Frame sources that feed the verification pipeline."""
