import os

USER_AGENT = "Mozilla/5.0 (compatible; news-feed-recommender/0.1)"

# Per-request bound for feed, page and leaderboard retrieval
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))
