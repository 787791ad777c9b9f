"""Integration adapters (HTTP feed, rules API, IRC) for the tweetrelay core."""
