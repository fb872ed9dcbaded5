import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("clients", "0001_initial"),
        ("customers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Channel",
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
                        db_index=True,
                        default=django.utils.timezone.now,
                        editable=False,
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
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        unique=True,
                        help_text="Public identifier exposed through the API",
                    ),
                ),
                (
                    "channel_type",
                    models.CharField(
                        choices=[("general", "General"), ("custom", "Custom")],
                        max_length=10,
                        help_text="Type of channel (general or custom)",
                    ),
                ),
                (
                    "name",
                    models.CharField(
                        max_length=255,
                        help_text='Channel name; always "general" for general channels',
                    ),
                ),
                (
                    "participant_key",
                    models.CharField(
                        db_index=True,
                        max_length=64,
                        help_text="sha256 of the sorted participant ids",
                    ),
                ),
                (
                    "last_activity_at",
                    models.DateTimeField(
                        help_text="Most recent activity; equals created_at until the first message",
                    ),
                ),
                (
                    "client",
                    models.ForeignKey(
                        help_text="Tenant this channel belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="channels",
                        to="clients.client",
                    ),
                ),
            ],
            options={
                "ordering": ["-last_activity_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="ChannelMembership",
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
                    "channel",
                    models.ForeignKey(
                        help_text="Channel the customer participates in",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="chat.channel",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        help_text="Participating customer",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("channel", "customer"),
                        name="unique_channel_membership",
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="channel",
            name="customers",
            field=models.ManyToManyField(
                related_name="channels",
                through="chat.ChannelMembership",
                to="customers.customer",
            ),
        ),
        migrations.AddIndex(
            model_name="channel",
            index=models.Index(
                fields=["client", "-last_activity_at", "-id"],
                name="chat_channel_activity_idx",
            ),
        ),
        migrations.AddConstraint(
            model_name="channel",
            constraint=models.UniqueConstraint(
                condition=models.Q(("channel_type", "general")),
                fields=("client", "participant_key"),
                name="unique_general_channel_per_participant_set",
            ),
        ),
        migrations.AddConstraint(
            model_name="channel",
            constraint=models.UniqueConstraint(
                condition=models.Q(("channel_type", "custom")),
                fields=("client", "name"),
                name="unique_custom_channel_name_per_client",
            ),
        ),
        migrations.AddConstraint(
            model_name="channel",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    models.Q(("channel_type", "general"), _negated=True),
                    ("name", "general"),
                    _connector="OR",
                ),
                name="general_channel_named_general",
            ),
        ),
        migrations.CreateModel(
            name="Message",
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
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        unique=True,
                        help_text="Public identifier exposed through the API",
                    ),
                ),
                (
                    "message_type",
                    models.CharField(
                        choices=[
                            ("text", "Text"),
                            ("image", "Image"),
                            ("file", "File"),
                            ("system", "System"),
                        ],
                        default="text",
                        max_length=10,
                        help_text="Type of message content",
                    ),
                ),
                ("content", models.TextField(help_text="Message body")),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        null=True,
                        help_text="Optional JSON attached to the message",
                    ),
                ),
                (
                    "channel",
                    models.ForeignKey(
                        help_text="Channel the message was sent in",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.channel",
                    ),
                ),
                (
                    "client",
                    models.ForeignKey(
                        help_text="Tenant this message belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="clients.client",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        help_text="Customer who sent the message",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sent_messages",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["channel", "created_at", "id"],
                        name="chat_message_channel_idx",
                    ),
                    models.Index(
                        fields=["sender", "-created_at", "-id"],
                        name="chat_message_sender_idx",
                    ),
                ],
            },
        ),
    ]
