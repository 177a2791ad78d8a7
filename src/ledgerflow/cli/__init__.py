"""Command line interface for ledgerflow."""
