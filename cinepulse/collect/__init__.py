"""
Collection subsystem for Cine Pulse.

Wraps the fetching layer: given a source URL, return the visible page
text that is embedded in the extraction prompt.
"""

from .scraper import TextSource, WebScraper, visible_text  # noqa: F401
