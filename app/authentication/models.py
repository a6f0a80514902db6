"""
Authentication models.

User is the identity every booking, payment and dispute points at. Roles:
- client: books and pays for services, accepts or disputes deliveries
- creator: delivers services and receives the creator share
- admin: verifies payments, resolves disputes, forces release/refund

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager
from core.model_mixins import UUIDPrimaryKeyMixin


class UserRole(models.TextChoices):
    CLIENT = "client", "Client"
    CREATOR = "creator", "Creator"
    ADMIN = "admin", "Admin"


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: Platform role (client, creator, admin)
        display_name: Name shown to the other booking party
        wallet_address: Payout address for creators (opaque string)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin

    Usage:
        creator = User.objects.create_user(
            email="creator@example.com",
            password="securepassword",
            role=UserRole.CREATOR,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    role = models.CharField(
        max_length=16,
        choices=UserRole.choices,
        default=UserRole.CLIENT,
        db_index=True,
        help_text="Platform role",
    )
    display_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Name shown to counterparties",
    )
    wallet_address = models.CharField(
        max_length=128,
        blank=True,
        help_text="Payout wallet address (creators)",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.display_name or self.email

    def get_short_name(self):
        return self.display_name or self.email.split("@")[0]

    @property
    def is_platform_admin(self) -> bool:
        """Admins verify payments and resolve disputes; superusers count too."""
        return self.role == UserRole.ADMIN or self.is_superuser

    @property
    def is_creator(self) -> bool:
        return self.role == UserRole.CREATOR
