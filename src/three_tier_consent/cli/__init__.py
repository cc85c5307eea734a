"""Command-line support for the consent pipeline."""
