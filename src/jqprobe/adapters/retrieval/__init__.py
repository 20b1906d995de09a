"""Retrieval adapters implementing RetrieverPort."""

from jqprobe.adapters.retrieval.http import HttpRetriever

__all__ = ["HttpRetriever"]
