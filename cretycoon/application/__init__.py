"""Application layer: run orchestration, commands and persistence."""
