"""Core archive-assembly pipeline components."""
