"""
crypto — at-rest encryption for third-party OAuth tokens.
"""
