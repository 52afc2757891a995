"""Core functionality for macdots."""
