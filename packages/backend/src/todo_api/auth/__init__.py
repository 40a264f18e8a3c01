"""Authentication and authorization.

Learn: Stateless bearer-token auth.
1. Users → email/password → signed JWT (auth/jwt.py, auth/password.py)
2. Every protected request → Authorization: Bearer <jwt> → CurrentIdentity
   (auth/dependencies.py)

The resolved identity is the only source of the owner id used to scope
todo queries.
"""
