"""Todo API — authenticated, per-user task management backend.

Users register and log in with email/password and receive a signed bearer
token. Every todo belongs to exactly one user and is only visible to them.
"""

__version__ = "0.1.0"
