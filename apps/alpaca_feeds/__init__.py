"""Command-line runner for the Alpaca feeds."""
