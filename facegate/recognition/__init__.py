"""Face crop preprocessing and embedding extraction."""
