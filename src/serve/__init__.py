"""Training-time serving components.

This module exposes the concurrent multi-root sampler and the demo
training loop that consumes its ordered sample stream.
"""
