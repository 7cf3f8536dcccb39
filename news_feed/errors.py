"""
Exceptions raised by the news feed recommender.
"""


class FetchError(Exception):
    """A source could not be retrieved or parsed this cycle."""


class DuplicateURLError(Exception):
    """An article with the same canonical URL is already stored."""

    def __init__(self, url: str):
        super().__init__(f"Article already stored: {url}")
        self.url = url
