"""Verification state machine and its frame-intake gate."""
