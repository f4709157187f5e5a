"""Shard ingestion layer.

This module finds shard archives under dataset roots and streams
paired image and label samples out of them.
"""
