"""
Permission checking.

A group's permission string is a list of capability tokens; a request is
allowed when the session's group holds the capability the operation needs.
"""
