
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Platform user. Shop staff belong to exactly one tenant; platform
    administrators carry ``is_super_admin`` and no tenant.
    """

    class Role(models.TextChoices):
        OWNER = "owner", "Owner"
        MANAGER = "manager", "Manager"
        CASHIER = "cashier", "Cashier"

    email = models.EmailField(unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    tenant = models.ForeignKey(
        "tenants.Tenant",
        on_delete=models.CASCADE,
        related_name="users",
        null=True,
        blank=True,
        help_text="Shop the user works in (empty for platform administrators)",
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CASHIER,
        help_text="Role inside the tenant",
    )
    is_super_admin = models.BooleanField(
        default=False,
        help_text="Platform administrator allowed to moderate tenant requests",
    )
    phone = models.CharField(max_length=20, blank=True, null=True, verbose_name="Phone Number")

    USERNAME_FIELD = 'username'
    REQUIRED_FIELDS = ['email']

    class Meta:
        db_table = 'user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=["tenant", "role"], name="user_tenant_role_idx"),
        ]

    def __str__(self):
        return self.username

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
