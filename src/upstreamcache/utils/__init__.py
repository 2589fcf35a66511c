"""Utility functions for upstreamcache."""
