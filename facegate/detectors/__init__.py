"""Face detection backends."""
