"""
Apps package - runnable entry points built on libs.alpaca.

This package contains:
- alpaca_feeds: Command-line runner printing a feed as JSON lines
"""
