"""
Authentication application.

Email-based User with a platform role (client, creator, admin). Token
issuance is handled by djangorestframework-simplejwt; this app only owns
the identity model.

Usage:
    from authentication.models import User, UserRole
"""
