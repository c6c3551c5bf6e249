"""CLI command handlers for mirrorforge."""
