import uuid

import django.db.models.deletion
from django.db import migrations, models

import clients.models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Client",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "is_deleted",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Whether this record has been soft deleted",
                    ),
                ),
                (
                    "deleted_at",
                    models.DateTimeField(
                        blank=True,
                        null=True,
                        help_text="Timestamp when this record was soft deleted",
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        unique=True,
                        help_text="Public identifier exposed through the API",
                    ),
                ),
                (
                    "name",
                    models.CharField(max_length=255, help_text="Human readable tenant name"),
                ),
                (
                    "domain",
                    models.CharField(
                        max_length=255,
                        help_text="Registered host (no scheme or port); subdomains are accepted",
                    ),
                ),
                (
                    "public_key",
                    models.CharField(
                        default=clients.models.generate_public_key,
                        max_length=64,
                        unique=True,
                        help_text="Public identifier sent as the X-Public-Key header",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="ClientToken",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "name",
                    models.CharField(
                        default="default",
                        max_length=100,
                        help_text="Label to tell tokens apart",
                    ),
                ),
                (
                    "token_hash",
                    models.CharField(
                        max_length=64,
                        unique=True,
                        help_text="sha256 hex digest of the plaintext token",
                    ),
                ),
                (
                    "expires_at",
                    models.DateTimeField(
                        blank=True,
                        null=True,
                        help_text="Expiry time; null means the token never expires",
                    ),
                ),
                (
                    "last_used_at",
                    models.DateTimeField(
                        blank=True,
                        null=True,
                        help_text="Last time this token authenticated a request",
                    ),
                ),
                (
                    "client",
                    models.ForeignKey(
                        help_text="Tenant this token authenticates",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tokens",
                        to="clients.client",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
