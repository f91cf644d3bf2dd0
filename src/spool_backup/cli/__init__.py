"""Command line interface for spool-backup."""
