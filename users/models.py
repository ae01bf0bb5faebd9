# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class Role(models.TextChoices):
    ADMIN = "admin", "Admin"
    BARANGAY = "barangay", "Barangay"
    USER = "user", "User"

    def can_manage(self, actor_id, owner_id) -> bool:
        """Admins manage everything; everyone else only what they own."""
        if self is Role.ADMIN:
            return True
        return actor_id is not None and actor_id == owner_id


class User(AbstractUser):
    role = models.CharField(
        max_length=30,
        choices=Role.choices,
        default=Role.USER,
    )

    # Officials are scoped to one barangay; their projects always include it
    barangay = models.ForeignKey(
        "core.Barangay",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
    )

    phone = models.CharField(max_length=20, blank=True, null=True)
    profile_picture = models.CharField(max_length=1024, blank=True, null=True)

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    @property
    def is_admin(self) -> bool:
        return self.role_enum is Role.ADMIN

    def __str__(self):
        return self.username
