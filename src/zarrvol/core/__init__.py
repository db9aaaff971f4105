"""
The core module contains the chunk grid addressing, configuration and shared helpers used
by the metadata, chunk and volume layers.
"""
