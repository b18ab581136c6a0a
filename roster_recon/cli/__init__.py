"""Command line interface for the roster reconciliation engine (python -m roster_recon.cli)."""
