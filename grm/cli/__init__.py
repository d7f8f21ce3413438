"""Command-line entry points (`grm`, `grm-bootstrap`)."""
