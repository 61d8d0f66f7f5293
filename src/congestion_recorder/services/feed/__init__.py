"""Inbound HFP feed transport."""

from congestion_recorder.services.feed.consumer import HfpFeedConsumer

__all__ = ["HfpFeedConsumer"]
