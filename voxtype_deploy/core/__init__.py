"""
Core functionality for the VoxType deployment engine.

This package contains the main logic for:
- The option schema and the typed override merge
- Cross-field validation of merged options
- Whisper model catalog lookup, fetching and digest verification
- Compiling options into the daemon's config.toml
- Wrapping the daemon executable with its runtime dependencies
- Generating systemd user-service units
"""
