"""
Register a tenant and issue its first API token.

Usage:
    python manage.py create_client --name "Acme" --domain acme.com
    python manage.py create_client --name "Acme" --domain acme.com --expires-days 90
"""

from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from clients.services import ClientService


class Command(BaseCommand):
    help = "Create a new client with a public key and an API token"

    def add_arguments(self, parser):
        parser.add_argument("--name", required=True, help="Client display name")
        parser.add_argument(
            "--domain",
            required=True,
            help="Domain requests will come from (e.g. example.com)",
        )
        parser.add_argument(
            "--token-name",
            default="client-api-token",
            help="Label for the issued token",
        )
        parser.add_argument(
            "--expires-days",
            type=int,
            default=None,
            help="Token lifetime in days (default: CLIENT_TOKEN_TTL_DAYS)",
        )

    def handle(self, *args, **options):
        expires_days = options["expires_days"]
        if expires_days is not None and expires_days < 1:
            raise CommandError("--expires-days must be a positive number of days")

        result = ClientService.create_client(options["name"], options["domain"])
        if not result.success:
            problems = "; ".join(
                f"{field}: {', '.join(messages)}" for field, messages in (result.details or {}).items()
            )
            raise CommandError(problems or result.error)

        client = result.data

        expires_at = timezone.now() + timedelta(days=expires_days) if expires_days else None
        issued = ClientService.issue_token(client, options["token_name"], expires_at=expires_at)

        self.stdout.write(self.style.SUCCESS(f"Client created: {client.name}"))
        self.stdout.write(f"   Client ID:  {client.uuid}")
        self.stdout.write(f"   Domain:     {client.domain}")
        self.stdout.write(f"   Public Key: {client.public_key}")
        self.stdout.write(f"   API Token:  {issued.plaintext}")
        if issued.token.expires_at:
            self.stdout.write(f"   Expires:    {issued.token.expires_at.isoformat()}")
        self.stdout.write(
            self.style.WARNING("\nStore the API token now; it cannot be shown again.")
        )
        self.stdout.write('Send it as "Authorization: Bearer <token>" with "X-Public-Key: <public key>".')
