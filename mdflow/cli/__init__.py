"""mdflow command line interface."""
