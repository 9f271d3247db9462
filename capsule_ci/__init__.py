"""capsule-ci: build, test, coverage and release pipelines for the capsule CLI."""

__version__ = "0.1.0"
