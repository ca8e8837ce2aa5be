"""
Accounts Models
Tables: Users

Identity lives with the external identity provider; this table only maps a
provider uid to the storefront role and display data.
"""
from django.db import models
from apps.core.models import BaseModel


class UserProfile(BaseModel):
    """
    Storefront profile for an identity-provider account.
    """
    ROLE_USER = 'user'
    ROLE_SUBADMIN = 'subadmin'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_USER, 'User'),
        (ROLE_SUBADMIN, 'Sub-admin'),
        (ROLE_ADMIN, 'Admin'),
    ]
    STAFF_ROLES = (ROLE_ADMIN, ROLE_SUBADMIN)

    uid = models.CharField(max_length=128, unique=True, help_text="Identity provider user id")
    email = models.EmailField(unique=True)
    display_name = models.CharField(max_length=255, blank=True, default='')
    photo_url = models.URLField(max_length=500, blank=True, default='')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_USER, db_index=True)
    last_login = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'accounts_users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.display_name or self.email} ({self.role})"

    @property
    def has_admin_access(self) -> bool:
        return self.role in self.STAFF_ROLES
