"""
Test suite for the VoxType deployment engine.

This package contains tests for:
- The option schema and override merging
- Validation of merged options
- Model catalog, resolution and digest verification
- Config compilation
- Executable wrapping and service generation
- End-to-end resolution passes and the CLI
"""
