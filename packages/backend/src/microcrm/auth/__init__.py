"""Authentication and authorization.

Learn: One authentication path: users → email/password → JWT access
token. The token resolves to an IdentityClaim, and the claim's user_id
scopes every client query (see services.client_service).
"""
