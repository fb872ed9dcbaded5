"""Tests for chat models and their database constraints."""

from datetime import timedelta

import pytest
from django.db import IntegrityError

from chat.models import Channel, ChannelMembership, ChannelType, participant_key_for
from chat.tests.factories import ChannelFactory


class TestParticipantKey:
    """Tests for participant_key_for()."""

    def test_ignores_order_and_duplicates(self):
        """
        The key identifies the set, not the list.

        Why it matters: [a, b] and [b, a, a] must map to the same general channel.
        """
        assert participant_key_for([3, 1]) == participant_key_for([1, 3, 3])

    def test_distinguishes_sets(self):
        """
        Different sets produce different keys.

        Why it matters: A pair and a trio are different conversations.
        """
        assert participant_key_for([1, 2]) != participant_key_for([1, 2, 3])

    def test_sorts_numerically(self):
        """
        Ids are compared as numbers, so 10 sorts after 9.

        Why it matters: The key must not depend on string ordering quirks.
        """
        assert participant_key_for([10, 9]) == participant_key_for([9, 10])


class TestChannelModel:
    """Tests for Channel behavior and constraints."""

    def test_activity_starts_at_creation(self, tenant):
        """
        A new channel's marker equals its creation time.

        Why it matters: Never-messaged channels still sort by age.
        """
        channel = ChannelFactory(client=tenant)
        stored = Channel.objects.get(pk=channel.pk)

        assert stored.last_activity_at == stored.created_at

    def test_general_channel_must_be_named_general(self, tenant):
        """
        The check constraint rejects renamed general channels.

        Why it matters: "general" is the general channel's fixed name.
        """
        with pytest.raises(IntegrityError):
            Channel.objects.create(
                client=tenant,
                channel_type=ChannelType.GENERAL,
                name="lobby",
                participant_key="k",
            )

    def test_custom_name_unique_per_client(self, tenant, other_tenant):
        """
        Custom names are unique per client only.

        Why it matters: Two tenants can both have a "Support" channel.
        """
        ChannelFactory(client=tenant, name="Support")
        ChannelFactory(client=other_tenant, name="Support")

        with pytest.raises(IntegrityError):
            ChannelFactory(client=tenant, name="Support")

    def test_activity_is_written_with_the_insert(self, tenant, django_assert_num_queries):
        """
        Creating a channel is a single INSERT that already carries the marker.

        Why it matters: No window exists where a stored channel has no activity.
        """
        with django_assert_num_queries(1):
            channel = Channel.objects.create(
                client=tenant,
                channel_type=ChannelType.CUSTOM,
                name="Support",
                participant_key=participant_key_for([1, 2]),
            )

        assert channel.last_activity_at == channel.created_at
        assert channel.last_activity_at is not None

    def test_explicit_activity_is_kept(self, tenant):
        """
        A marker passed at creation is not overwritten.

        Why it matters: Imports can preserve historical activity.
        """
        channel = ChannelFactory(client=tenant)
        later = channel.created_at + timedelta(hours=1)

        other = ChannelFactory(client=tenant, name="Later", last_activity_at=later)

        assert Channel.objects.get(pk=other.pk).last_activity_at == later

    def test_membership_unique(self, tenant, alice, bob):
        """
        A customer participates in a channel at most once.

        Why it matters: Participant lists never repeat a customer.
        """
        channel = ChannelFactory(client=tenant, participants=[alice, bob])

        with pytest.raises(IntegrityError):
            ChannelMembership.objects.create(channel=channel, customer=alice)
