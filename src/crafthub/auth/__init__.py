"""Authentication and authorization.

Learn: Three ways to log in all end at the same place:
1. Email/phone + password → User
2. Email/phone + one-time code → User
3. OAuth provider → identity resolver → User

Every path issues the same JWT (auth.jwt.TokenCodec). Subsequent requests
go through the authorization pipeline in auth.dependencies: authenticate
first, then the per-route gates from auth.gates.
"""
