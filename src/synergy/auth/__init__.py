"""Authentication.

Learn: Users log in with email/password and get JWT access/refresh
tokens. The access token authenticates both the HTTP API (Bearer header)
and the realtime socket (?token= query param).
"""
