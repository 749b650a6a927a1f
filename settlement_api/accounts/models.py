from django.db import models
from django.contrib.auth.models import AbstractUser, BaseUserManager


class TraderManager(BaseUserManager):
    """
    Manager for Trader. Handles user and superuser creation using email as the unique identifier.
    """
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("Email is required.")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        return self.create_user(email, password, **extra_fields)


class Trader(AbstractUser):
    """
    Marketplace participant. The same account can buy in one trade and sell in another.
    Authentication itself is handled by simplejwt; this model only carries what
    the settlement core needs to address and display a participant.
    """
    email = models.EmailField(unique=True, blank=False)
    display_name = models.CharField(max_length=120, blank=True)
    avatar_url = models.URLField(blank=True)
    tax_document = models.CharField(max_length=20, blank=True)  # CPF/CNPJ sent to the gateway
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    username = None

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = TraderManager()

    def get_display_name(self):
        return self.display_name or self.get_full_name() or self.email

    def __str__(self):
        return self.email
