"""Core domain package for tweetrelay.

Core contains the dedup cache, the rate limiter, feed processing, the
ingestion loop and command handling without any HTTP or IRC code, keeping
the business logic portable.
"""
