"""Application version information."""

# Semantic Versioning: MAJOR.MINOR.PATCH
VERSION = "0.3.0"
