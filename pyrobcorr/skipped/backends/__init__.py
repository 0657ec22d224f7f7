"""Skipped-correlation backends: CPU reference and torch-accelerated GPU."""
