"""
Authentication and authorization.

Token codec, password hashing, the auth service, the RBAC matrix and the
FastAPI dependencies that enforce them. Import from the submodules.
"""
