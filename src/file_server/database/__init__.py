"""
Metadata index layer for the file server.

Contains the metadata index contract and its SQLite-document and MongoDB
implementations, selected from settings at startup.
"""
