"""
mapleads - Terminal client for a Google Maps business scraper service.

Starts asynchronous scrape jobs on the remote service, follows their
progress, browses and deletes the scraped businesses, and requests
spreadsheet exports.
"""

__version__ = "0.1.0"
__app_name__ = "mapleads"
