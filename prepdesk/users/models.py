from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    ROLE_CHOICES = [
        ("admin", "Admin"),
        ("supervisor", "Preparation Supervisor"),
        ("preparer", "Order Preparer"),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="preparer")
    phone = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "users"
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    @property
    def is_admin(self):
        return self.role == "admin" or self.is_superuser

    @property
    def is_supervisor(self):
        return self.role == "supervisor"

    @property
    def is_preparer(self):
        return self.role == "preparer"
