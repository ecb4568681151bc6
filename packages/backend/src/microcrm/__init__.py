"""MicroCRM — multi-tenant client records behind JWT authentication.

Users register and log in with email/password, then manage their own
client records (create, list with search and pagination, update, delete).
Every client query is scoped to the authenticated owner.
"""

__version__ = "0.1.0"
