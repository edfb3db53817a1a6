"""
StashBox - Folders and Files on Flat Object Storage

A virtual filesystem layer that stores hierarchical folders and files as
flat, owner-prefixed objects in an S3-compatible bucket, with quota
accounting and public share tokens.
"""

__version__ = "1.0.0"
__author__ = "StashBox Team"
