"""
Team Backend

Team management API: teams, members and per-member permissions, and the
conversations a team owns. Every successful mutation is broadcast to the
affected users through the push service.
"""

__version__ = "1.0.0"
