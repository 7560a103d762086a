"""
Adapter layer for the file server.

Contains the content store contract and its local-filesystem and S3
implementations, selected from settings at startup.
"""
