"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.

Project-wide fixtures:
    client_credentials: A client with an issued token
    api_client: APIClient sending that client's credentials
    other_client_credentials / other_api_client: A second, unrelated tenant
"""

import os
from dataclasses import dataclass

import django
import pytest
from rest_framework.test import APIClient

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Realtime tests run against the in-process channel layer
    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
    }


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_services.py, test_consumers.py, etc. → integration
    - test_models.py, test_serializers.py, test_pagination.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_consumers.py",
        "test_notifications.py",
        "test_commands.py",
        "test_authentication.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_managers.py",
        "test_pagination.py",
        "test_exceptions.py",
        "test_helpers.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = item.path.name

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Tenant Fixtures
# =============================================================================

TEST_ORIGIN = "https://app.example.com"


@dataclass
class ClientCredentials:
    """A tenant plus the plaintext credentials an SDK would send."""

    client: object
    public_key: str
    token: str
    origin: str

    def headers(self) -> dict[str, str]:
        return {
            "HTTP_AUTHORIZATION": f"Bearer {self.token}",
            "HTTP_X_PUBLIC_KEY": self.public_key,
            "HTTP_ORIGIN": self.origin,
        }


def _make_credentials(domain: str, origin: str) -> ClientCredentials:
    from clients.services import ClientService
    from clients.tests.factories import ClientFactory

    client = ClientFactory(domain=domain)
    issued = ClientService.issue_token(client)
    return ClientCredentials(
        client=client,
        public_key=client.public_key,
        token=issued.plaintext,
        origin=origin,
    )


@pytest.fixture
def client_credentials(db):
    """Tenant registered for example.com with one token."""
    return _make_credentials("example.com", TEST_ORIGIN)


@pytest.fixture
def tenant(client_credentials):
    """The Client of client_credentials."""
    return client_credentials.client


@pytest.fixture
def api_client(client_credentials):
    """APIClient authenticated as client_credentials."""
    api = APIClient()
    api.credentials(**client_credentials.headers())
    return api


@pytest.fixture
def other_client_credentials(db):
    """A second tenant, registered for other.test."""
    return _make_credentials("other.test", "https://other.test")


@pytest.fixture
def other_tenant(other_client_credentials):
    return other_client_credentials.client


@pytest.fixture
def other_api_client(other_client_credentials):
    api = APIClient()
    api.credentials(**other_client_credentials.headers())
    return api
