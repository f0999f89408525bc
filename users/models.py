# users/models.py

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.utils import timezone


class CustomUser(AbstractUser):
    """
    User model with a role used for reservation and restaurant access control.
    """

    class Role(models.TextChoices):
        """
        User roles enumeration for role-based access control.
        """
        USER = 'user', _('User')
        OWNER = 'owner', _('Restaurant owner')
        ADMIN = 'admin', _('Admin')

    role = models.CharField(
        _('role'),
        max_length=20,
        choices=Role.choices,
        default=Role.USER,
        db_index=True,
        help_text=_('User role for access control.')
    )

    date_joined = models.DateTimeField(
        _('date joined'),
        default=timezone.now
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-date_joined']
        indexes = [
            models.Index(fields=['email', 'role'], name='users_custo_email_4f4b8e_idx'),
            models.Index(fields=['is_active', 'role'], name='users_custo_is_acti_0c6b2a_idx'),
        ]

    def __str__(self):
        return self.username

    # Role checking properties

    @property
    def is_owner(self):
        """Check if user owns restaurants."""
        return self.role == self.Role.OWNER

    @property
    def is_admin(self):
        """Check if user is an admin."""
        return self.role == self.Role.ADMIN

    def has_role(self, *roles):
        """
        Check if user has any of the specified roles.
        """
        return self.role in roles
