"""
Basecore - shared runtime plumbing.

Settings, logging and the Redis client used by every service in the repo.
"""
