"""
Test configuration and fixtures for chat tests.

This module provides:
- Customer fixtures inside the authenticated tenant
- A custom channel and its general channel
- A cleared in-memory channel layer for realtime tests

Usage:
    def test_example(api_client, alice, bob):
        response = api_client.post(
            "/api/v1/channels/",
            {"type": "general", "participants": [str(alice.uuid), str(bob.uuid)]},
            format="json",
        )
        assert response.status_code == 201
"""

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from chat.services import ChannelService
from customers.tests.factories import CustomerFactory


# =============================================================================
# Customer Fixtures
# =============================================================================


@pytest.fixture
def alice(tenant):
    """Customer of the authenticated tenant."""
    return CustomerFactory(client=tenant, name="Alice", email="alice@example.com")


@pytest.fixture
def bob(tenant):
    """Customer of the authenticated tenant."""
    return CustomerFactory(client=tenant, name="Bob", email="bob@example.com")


@pytest.fixture
def carol(tenant):
    """Customer of the authenticated tenant."""
    return CustomerFactory(client=tenant, name="Carol", email="carol@example.com")


@pytest.fixture
def outsider(other_tenant):
    """Customer of a different tenant."""
    return CustomerFactory(client=other_tenant, name="Mallory", email="mallory@example.com")


# =============================================================================
# Channel Fixtures
# =============================================================================


@pytest.fixture
def project_channel(tenant, alice, bob):
    """Custom channel "Project X" between alice and bob (provisions their general channel)."""
    return ChannelService.resolve(
        tenant,
        channel_type="custom",
        participant_ids=[alice.uuid, bob.uuid],
        name="Project X",
    ).data.channel


# =============================================================================
# Realtime Fixtures
# =============================================================================


@pytest.fixture
def channel_layer():
    """The in-memory channel layer, emptied before and after the test."""
    layer = get_channel_layer()
    async_to_sync(layer.flush)()
    yield layer
    async_to_sync(layer.flush)()
