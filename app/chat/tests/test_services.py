"""
Tests for the chat service layer.

Covers:
- ChannelService: general/custom resolution, participant validation,
  lost creation races
- ActivityTracker: activity markers, activity-ordered channel and customer
  listings
- MessageService: append validation, direct messages and history listings

Testing Philosophy:
    Tests focus on observable behavior: returned channels, error codes and
    database state. Participant order in requests never matters.
"""

import uuid
from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone
from freezegun import freeze_time

from chat.models import Channel, ChannelMembership, ChannelType, Message
from chat.services import ActivityTracker, ChannelService, MessageService
from chat.tests.factories import ChannelFactory, MessageFactory
from customers.tests.factories import CustomerFactory


def participant_ids(channel):
    return {membership.customer.uuid for membership in channel.memberships.all()}


def resolve(client, channel_type, participants, name=None):
    """Resolve a channel that the test expects to succeed."""
    result = ChannelService.resolve(client, channel_type, participants, name=name)
    assert result.success is True, result.error
    return result.data


def append(client, channel, sender, content, message_type="text", metadata=None):
    result = MessageService.append(
        client, channel.uuid, sender.uuid, message_type, content, metadata
    )
    assert result.success is True, result.error
    return result.data


@pytest.fixture
def lose_race(monkeypatch):
    """
    Make ChannelService._create_channel lose a race for one channel type.

    Just before the real insert, a competing channel with the same identity
    is committed into the surrounding transaction, so the insert hits the
    unique constraint. Returns a list collecting the competing channels.
    """
    original = ChannelService.__dict__["_create_channel"]
    winners = []

    def arm(race_type):
        def racing(cls, client, channel_type, name, participant_key, participants):
            if channel_type == race_type:
                winners.append(
                    Channel.objects.create(
                        client=client,
                        channel_type=channel_type,
                        name=name,
                        participant_key=participant_key,
                    )
                )
            return original.__func__(cls, client, channel_type, name, participant_key, participants)

        monkeypatch.setattr(ChannelService, "_create_channel", classmethod(racing))
        return winners

    return arm


# =============================================================================
# ChannelService.resolve - general channels
# =============================================================================


class TestResolveGeneralChannel:
    """
    Tests for ChannelService.resolve() with type "general".

    Verifies:
    - One general channel per participant set per client
    - Participant order and duplicates are irrelevant
    """

    def test_creates_general_channel(self, tenant, alice, bob):
        """
        A new participant set gets a general channel named "general".

        Why it matters: Every customer pair has exactly one default conversation.
        """
        resolution = resolve(tenant, "general", [alice.uuid, bob.uuid])

        assert resolution.created is True
        assert resolution.channel.channel_type == ChannelType.GENERAL
        assert resolution.channel.name == "general"
        assert participant_ids(resolution.channel) == {alice.uuid, bob.uuid}
        assert resolution.channel.last_activity_at == resolution.channel.created_at

    def test_reordered_duplicate_conflicts(self, tenant, alice, bob):
        """
        Creating the same general channel again, reordered, fails with a conflict.

        Why it matters: Participant order must not create a second conversation.
        """
        first = resolve(tenant, "general", [alice.uuid, bob.uuid]).channel

        result = ChannelService.resolve(tenant, "general", [bob.uuid, alice.uuid])

        assert result.success is False
        assert result.error_code == "DUPLICATE_GENERAL_CHANNEL"
        assert result.details == {"channel": str(first.uuid)}
        assert Channel.objects.filter(channel_type=ChannelType.GENERAL).count() == 1

    def test_duplicate_ids_are_collapsed(self, tenant, alice, bob):
        """
        Repeated ids count once.

        Why it matters: [a, a, b] is the same participant set as [a, b].
        """
        resolution = resolve(tenant, "general", [alice.uuid, alice.uuid, bob.uuid])

        assert ChannelMembership.objects.filter(channel=resolution.channel).count() == 2

    def test_three_participant_general_channel(self, tenant, alice, bob, carol):
        """
        General channels are not limited to pairs.

        Why it matters: Group participant sets get their own general channel too.
        """
        pair = resolve(tenant, "general", [alice.uuid, bob.uuid]).channel
        trio = resolve(tenant, "general", [alice.uuid, bob.uuid, carol.uuid]).channel

        assert pair.pk != trio.pk

    def test_same_set_in_other_client_is_independent(self, tenant, other_tenant):
        """
        Uniqueness is scoped to the client.

        Why it matters: Tenants never see each other's channels.
        """
        a1, b1 = CustomerFactory.create_batch(2, client=tenant)
        a2, b2 = CustomerFactory.create_batch(2, client=other_tenant)

        resolve(tenant, "general", [a1.uuid, b1.uuid])
        resolution = resolve(other_tenant, "general", [a2.uuid, b2.uuid])

        assert resolution.created is True

    def test_database_rejects_second_general_channel(self, tenant, alice, bob):
        """
        The partial unique constraint backs the service check.

        Why it matters: Concurrent requests that both pass the existence check
        must still end with one general channel.
        """
        channel = resolve(tenant, "general", [alice.uuid, bob.uuid]).channel

        with pytest.raises(IntegrityError):
            Channel.objects.create(
                client=tenant,
                channel_type=ChannelType.GENERAL,
                name="general",
                participant_key=channel.participant_key,
            )


# =============================================================================
# ChannelService.resolve - custom channels
# =============================================================================


class TestResolveCustomChannel:
    """
    Tests for ChannelService.resolve() with type "custom".

    Verifies:
    - Deduplication by name only
    - Auto-provisioning of the participants' general channel
    """

    def test_creates_custom_and_general_channel(self, tenant, alice, bob):
        """
        A new custom channel also provisions the general channel of its participants.

        Why it matters: Every custom conversation has a default conversation behind it.
        """
        resolution = resolve(tenant, "custom", [alice.uuid, bob.uuid], name="Project X")

        assert resolution.created is True
        assert resolution.general_created is True
        assert resolution.channel.name == "Project X"
        general = ChannelService.find_general(tenant, [bob.uuid, alice.uuid]).data
        assert general is not None
        assert general.pk == resolution.general_channel.pk
        assert participant_ids(general) == {alice.uuid, bob.uuid}

    def test_same_name_returns_existing_channel(self, tenant, alice, bob, carol):
        """
        A second request for the same name returns the first channel unchanged.

        Why it matters: Custom channels are identified by name, whatever
        participants the later request lists.
        """
        first = resolve(tenant, "custom", [alice.uuid, bob.uuid], name="Project X")
        channel_count = Channel.objects.count()

        second = resolve(tenant, "custom", [alice.uuid, carol.uuid], name="Project X")

        assert second.created is False
        assert second.channel.pk == first.channel.pk
        assert participant_ids(second.channel) == {alice.uuid, bob.uuid}
        assert Channel.objects.count() == channel_count

    def test_existing_general_channel_is_reused(self, tenant, alice, bob):
        """
        Two custom channels for one participant set share one general channel.

        Why it matters: Provisioning must be idempotent.
        """
        resolve(tenant, "custom", [alice.uuid, bob.uuid], name="Design")
        second = resolve(tenant, "custom", [bob.uuid, alice.uuid], name="Launch")

        assert second.general_created is False
        assert Channel.objects.filter(channel_type=ChannelType.GENERAL).count() == 1
        assert Channel.objects.filter(channel_type=ChannelType.CUSTOM).count() == 2

    def test_general_after_custom_conflicts(self, tenant, alice, bob):
        """
        Explicitly creating the provisioned general channel conflicts.

        Why it matters: The provisioned channel is the general channel of the set.
        """
        resolve(tenant, "custom", [alice.uuid, bob.uuid], name="Project X")

        result = ChannelService.resolve(tenant, "general", [alice.uuid, bob.uuid])

        assert result.error_code == "DUPLICATE_GENERAL_CHANNEL"

    def test_custom_name_is_trimmed(self, tenant, alice, bob):
        """
        Surrounding whitespace does not make a different name.

        Why it matters: " Project X " and "Project X" are the same channel.
        """
        first = resolve(tenant, "custom", [alice.uuid, bob.uuid], name="Project X")
        second = resolve(tenant, "custom", [alice.uuid, bob.uuid], name="  Project X ")

        assert second.channel.pk == first.channel.pk

    @pytest.mark.parametrize("name", [None, "", "   ", "x" * 256])
    def test_invalid_custom_name(self, tenant, alice, bob, name):
        """
        Custom channels need a non-blank name of at most 255 characters.

        Why it matters: The name is the custom channel's identity.
        """
        result = ChannelService.resolve(tenant, "custom", [alice.uuid, bob.uuid], name=name)

        assert result.success is False
        assert result.error_code == "INVALID_CHANNEL_NAME"
        assert Channel.objects.count() == 0

    def test_custom_channel_may_be_named_general(self, tenant, alice, bob):
        """
        "general" is an ordinary custom name.

        Why it matters: Names and types are separate dimensions.
        """
        resolution = resolve(tenant, "custom", [alice.uuid, bob.uuid], name="general")

        assert resolution.channel.channel_type == ChannelType.CUSTOM
        assert Channel.objects.filter(name="general").count() == 2


# =============================================================================
# ChannelService.resolve - lost creation races
# =============================================================================


class TestResolveLostRace:
    """
    Tests for requests that pass the existence check but lose the insert.

    A competing channel is inserted right before the real insert, which
    then violates the partial unique constraint.
    """

    def test_lost_general_race_is_a_duplicate(self, tenant, alice, bob, lose_race):
        """
        Losing the general insert reports the winner as DUPLICATE_GENERAL_CHANNEL.

        Why it matters: Concurrent creators agree on one general channel.
        """
        winners = lose_race(ChannelType.GENERAL)

        result = ChannelService.resolve(tenant, "general", [alice.uuid, bob.uuid])

        assert result.success is False
        assert result.error_code == "DUPLICATE_GENERAL_CHANNEL"
        assert result.details == {"channel": str(winners[0].uuid)}
        assert Channel.objects.filter(channel_type=ChannelType.GENERAL).count() == 1

    def test_lost_general_race_during_custom_creation_reuses_winner(
        self, tenant, alice, bob, lose_race
    ):
        """
        Provisioning that loses the general insert adopts the winner.

        Why it matters: The custom channel is still created, backed by exactly
        one general channel.
        """
        winners = lose_race(ChannelType.GENERAL)

        resolution = resolve(tenant, "custom", [alice.uuid, bob.uuid], name="Project X")

        assert resolution.created is True
        assert resolution.general_created is False
        assert resolution.general_channel.pk == winners[0].pk
        assert Channel.objects.filter(channel_type=ChannelType.GENERAL).count() == 1
        assert Channel.objects.filter(channel_type=ChannelType.CUSTOM).count() == 1

    def test_lost_name_race_returns_winner(self, tenant, alice, bob, lose_race):
        """
        Losing the custom insert returns the channel that won the name.

        Why it matters: Same-name requests converge on one channel.
        """
        winners = lose_race(ChannelType.CUSTOM)

        resolution = resolve(tenant, "custom", [alice.uuid, bob.uuid], name="Project X")

        assert resolution.created is False
        assert resolution.channel.pk == winners[0].pk
        assert Channel.objects.filter(channel_type=ChannelType.CUSTOM).count() == 1
        assert resolution.general_created is True


# =============================================================================
# ChannelService - validation
# =============================================================================


class TestResolveValidation:
    """Tests for channel type and participant validation."""

    def test_unknown_channel_type(self, tenant, alice, bob):
        """
        Only "general" and "custom" are accepted.

        Why it matters: Unknown types must not silently create channels.
        """
        result = ChannelService.resolve(tenant, "direct", [alice.uuid, bob.uuid])

        assert result.error_code == "INVALID_CHANNEL_TYPE"
        assert result.details == {"type": "direct"}

    def test_single_participant_after_dedup(self, tenant, alice):
        """
        A participant listed twice is still only one participant.

        Why it matters: Channels need at least two distinct customers.
        """
        result = ChannelService.resolve(tenant, "general", [alice.uuid, alice.uuid])

        assert result.error_code == "INVALID_PARTICIPANTS"
        assert result.details["count"] == 1

    def test_too_many_participants(self, tenant, settings):
        """
        Participant sets above CHAT_MAX_CHANNEL_PARTICIPANTS are rejected.

        Why it matters: The bound is configurable and enforced.
        """
        settings.CHAT_MAX_CHANNEL_PARTICIPANTS = 3
        customers = CustomerFactory.create_batch(4, client=tenant)

        result = ChannelService.resolve(tenant, "general", [c.uuid for c in customers])

        assert result.details == {"count": 4, "min": 2, "max": 3}

    def test_foreign_participant_is_named(self, tenant, alice, outsider):
        """
        A customer of another client fails validation and is named in the error.

        Why it matters: Tenant isolation must fail loudly, never drop the id.
        """
        result = ChannelService.resolve(tenant, "general", [alice.uuid, outsider.uuid])

        assert result.error_code == "INVALID_PARTICIPANTS"
        assert result.details == {"participants": [str(outsider.uuid)]}
        assert Channel.objects.count() == 0

    def test_unknown_and_deleted_participants_are_named(self, tenant, alice):
        """
        Unknown and soft-deleted ids are both reported.

        Why it matters: Deleted customers cannot join new channels.
        """
        deleted = CustomerFactory(client=tenant, is_deleted=True)
        unknown = str(uuid.uuid4())

        result = ChannelService.resolve(tenant, "general", [alice.uuid, deleted.uuid, unknown])

        assert result.details["participants"] == [str(deleted.uuid), unknown]

    def test_participants_must_be_a_list(self, tenant):
        """
        A bare string is not a participant list.

        Why it matters: Iterating a string would yield characters as ids.
        """
        result = ChannelService.resolve(tenant, "general", "alice,bob")

        assert result.error_code == "INVALID_PARTICIPANTS"

    def test_find_general_validates_participants(self, tenant, alice, outsider):
        """
        find_general() rejects participant sets like resolve() does.

        Why it matters: Lookups must not reveal other tenants' channels.
        """
        result = ChannelService.find_general(tenant, [alice.uuid, outsider.uuid])

        assert result.error_code == "INVALID_PARTICIPANTS"

    def test_find_general_without_channel(self, tenant, alice, bob):
        """
        A valid participant set without a general channel yields None.

        Why it matters: Absence is an answer, not an error.
        """
        result = ChannelService.find_general(tenant, [alice.uuid, bob.uuid])

        assert result.success is True
        assert result.data is None


# =============================================================================
# ChannelService.get
# =============================================================================


class TestChannelServiceGet:
    """Tests for ChannelService.get()."""

    def test_returns_own_channel(self, tenant, project_channel):
        """
        A channel is found by its public id.

        Why it matters: Basic lookup used by messages and websockets.
        """
        assert ChannelService.get(tenant, str(project_channel.uuid)).data == project_channel

    @pytest.mark.parametrize("kind", ["foreign", "unknown", "malformed"])
    def test_unresolvable_channel(self, tenant, other_tenant, kind):
        """
        Foreign, unknown and malformed ids fail with CHANNEL_NOT_FOUND.

        Why it matters: Another client's channel is indistinguishable from no channel.
        """
        ids = {
            "foreign": lambda: ChannelFactory(client=other_tenant).uuid,
            "unknown": uuid.uuid4,
            "malformed": lambda: "ch_123",
        }
        channel_id = ids[kind]()

        result = ChannelService.get(tenant, channel_id)

        assert result.error_code == "CHANNEL_NOT_FOUND"
        assert result.details == {"channel": str(channel_id)}


# =============================================================================
# ActivityTracker
# =============================================================================


class TestActivityTrackerTouch:
    """Tests for ActivityTracker.touch()."""

    def test_moves_marker_forward(self, tenant):
        """
        A later timestamp replaces the marker.

        Why it matters: New messages push the channel to the top.
        """
        channel = ChannelFactory(client=tenant)
        later = channel.last_activity_at + timedelta(minutes=5)

        assert ActivityTracker.touch(channel, later) is True
        channel.refresh_from_db()
        assert channel.last_activity_at == later

    def test_never_moves_marker_backward(self, tenant):
        """
        An earlier timestamp leaves the marker unchanged.

        Why it matters: Out-of-order commits must not reorder channels backwards.
        """
        channel = ChannelFactory(client=tenant)
        current = channel.last_activity_at

        assert ActivityTracker.touch(channel, current - timedelta(minutes=5)) is False
        channel.refresh_from_db()
        assert channel.last_activity_at == current


class TestActivityTrackerListOrdered:
    """Tests for ActivityTracker.list_ordered()."""

    def test_messaged_channel_sorts_before_newer_idle_channel(self, tenant, alice, bob, carol):
        """
        Activity, not creation time, orders the listing.

        Why it matters: The most recently used conversation comes first.
        """
        with freeze_time("2024-01-01 10:00:00"):
            first = resolve(tenant, "general", [alice.uuid, bob.uuid]).channel
        with freeze_time("2024-01-01 10:05:00"):
            second = resolve(tenant, "general", [alice.uuid, carol.uuid]).channel
        with freeze_time("2024-01-01 10:10:00"):
            append(tenant, first, alice, "Hello")

        page = ActivityTracker.list_ordered(tenant, limit=10).data

        assert [channel.pk for channel in page.items] == [first.pk, second.pk]

    def test_equal_markers_have_stable_order(self, tenant):
        """
        Channels with identical markers come back in the same order every time.

        Why it matters: Pagination over ties must be deterministic.
        """
        channels = ChannelFactory.create_batch(4, client=tenant)
        Channel.objects.filter(pk__in=[c.pk for c in channels]).update(
            last_activity_at=timezone.now()
        )

        orders = [
            [channel.pk for channel in ActivityTracker.list_ordered(tenant, limit=10).data.items]
            for _ in range(3)
        ]

        assert orders[0] == orders[1] == orders[2]
        assert orders[0] == sorted(orders[0], reverse=True)

    def test_cursor_walk_visits_every_channel_once(self, tenant):
        """
        Paging with starting_after reproduces the unpaginated order exactly.

        Why it matters: Keyset pagination must neither skip nor repeat across ties.
        """
        channels = ChannelFactory.create_batch(7, client=tenant)
        tied = timezone.now()
        Channel.objects.filter(pk__in=[c.pk for c in channels[2:5]]).update(last_activity_at=tied)
        full = [c.pk for c in ActivityTracker.list_ordered(tenant, limit=100).data.items]

        walked = []
        cursor = None
        while True:
            page = ActivityTracker.list_ordered(tenant, limit=3, starting_after=cursor).data
            walked.extend(channel.pk for channel in page.items)
            if not page.has_more:
                break
            cursor = page.items[-1].uuid

        assert walked == full
        assert len(walked) == 7

    def test_filters_by_customer(self, tenant, alice, bob, carol):
        """
        The customer listing only includes the customer's channels.

        Why it matters: Inbox views show one customer's conversations.
        """
        resolve(tenant, "general", [alice.uuid, bob.uuid])
        resolve(tenant, "general", [bob.uuid, carol.uuid])

        page = ActivityTracker.list_ordered(tenant, customer=alice, limit=10).data

        assert page.total_count == 1
        assert alice.uuid in participant_ids(page.items[0])

    def test_cursor_from_other_listing_is_rejected(self, tenant, other_tenant):
        """
        A cursor naming a channel outside the listing is INVALID_CURSOR.

        Why it matters: Foreign ids must not leak through pagination.
        """
        ChannelFactory(client=tenant)
        foreign = ChannelFactory(client=other_tenant)

        result = ActivityTracker.list_ordered(tenant, limit=10, starting_after=foreign.uuid)

        assert result.error_code == "INVALID_CURSOR"
        assert result.details == {"starting_after": str(foreign.uuid)}


class TestActivityTrackerActiveCustomers:
    """Tests for ActivityTracker.list_active_customers()."""

    def test_orders_senders_by_latest_message(self, tenant, alice, bob, carol, project_channel):
        """
        Customers are ranked by their latest sent message; silent ones are left out.

        Why it matters: Support dashboards surface whoever spoke last.
        """
        with freeze_time("2024-01-01 10:00:00"):
            append(tenant, project_channel, bob, "first")
        with freeze_time("2024-01-01 10:05:00"):
            append(tenant, project_channel, alice, "second")
        with freeze_time("2024-01-01 10:10:00"):
            append(tenant, project_channel, bob, "third")

        page = ActivityTracker.list_active_customers(tenant, limit=10).data

        assert page.items == [bob, alice]
        assert page.total_count == 2
        assert page.items[0].latest_message_at.minute == 10

    def test_sender_email_lists_conversation_partners(self, tenant, alice, bob, carol):
        """
        With a sender, partners are ranked by messages in channels they share.

        Why it matters: A customer's inbox lists the people they talk to,
        ignoring what those people say elsewhere.
        """
        with_bob = resolve(tenant, "general", [alice.uuid, bob.uuid]).channel
        with_carol = resolve(tenant, "general", [alice.uuid, carol.uuid]).channel
        elsewhere = resolve(tenant, "general", [bob.uuid, carol.uuid]).channel
        silent = CustomerFactory(client=tenant)
        resolve(tenant, "general", [alice.uuid, silent.uuid])

        with freeze_time("2024-01-01 10:05:00"):
            append(tenant, with_bob, alice, "hi bob")
        with freeze_time("2024-01-01 10:10:00"):
            append(tenant, with_carol, carol, "hi alice")
        with freeze_time("2024-01-01 10:20:00"):
            append(tenant, elsewhere, bob, "hi carol")

        page = ActivityTracker.list_active_customers(
            tenant, sender_email="ALICE@example.com", limit=10
        ).data

        assert page.items == [carol, bob]
        assert page.items[1].latest_message_at.minute == 5

    def test_unknown_sender_email(self, tenant):
        """
        An unknown sender email is CUSTOMER_NOT_FOUND.

        Why it matters: The caller learns the filter itself is wrong.
        """
        result = ActivityTracker.list_active_customers(
            tenant, sender_email="nobody@example.com", limit=10
        )

        assert result.error_code == "CUSTOMER_NOT_FOUND"
        assert result.details == {"missing": ["nobody@example.com"]}

    def test_excludes_other_clients(self, tenant, other_tenant, alice, project_channel):
        """
        Another tenant's senders never appear.

        Why it matters: Tenant isolation applies to derived listings.
        """
        append(tenant, project_channel, alice, "hello")
        MessageFactory(channel=ChannelFactory(client=other_tenant))

        page = ActivityTracker.list_active_customers(tenant, limit=10).data

        assert page.items == [alice]


# =============================================================================
# MessageService
# =============================================================================


class TestMessageServiceAppend:
    """Tests for MessageService.append()."""

    def test_appends_and_bumps_activity(self, tenant, alice, project_channel):
        """
        The message is stored and the channel marker moves to its creation time.

        Why it matters: Listings order by the latest message.
        """
        with freeze_time(timezone.now() + timedelta(minutes=1)):
            message = append(tenant, project_channel, alice, "Hello", metadata={"lang": "en"})

        project_channel.refresh_from_db()
        assert message.metadata == {"lang": "en"}
        assert project_channel.last_activity_at == message.created_at

    def test_sender_must_participate(self, tenant, carol, project_channel):
        """
        Customers outside the channel cannot post in it.

        Why it matters: Membership is fixed when the channel is created.
        """
        result = MessageService.append(tenant, project_channel.uuid, carol.uuid, "text", "Hi")

        assert result.error_code == "SENDER_NOT_IN_CHANNEL"
        assert result.details == {"channel": str(project_channel.uuid), "sender": str(carol.uuid)}
        assert Message.objects.count() == 0

    def test_foreign_sender_is_not_found(self, tenant, outsider, project_channel):
        """
        A sender from another client is an unknown customer.

        Why it matters: Tenant isolation on the write path.
        """
        result = MessageService.append(tenant, project_channel.uuid, outsider.uuid, "text", "Hi")

        assert result.error_code == "CUSTOMER_NOT_FOUND"

    def test_unknown_channel(self, tenant, alice):
        """
        Appending to an unknown channel is CHANNEL_NOT_FOUND.

        Why it matters: Messages always belong to an existing channel.
        """
        result = MessageService.append(tenant, uuid.uuid4(), alice.uuid, "text", "Hi")

        assert result.error_code == "CHANNEL_NOT_FOUND"

    def test_invalid_fields_are_reported_together(self, tenant, alice, project_channel):
        """
        Bad type, blank content and non-object metadata are all reported.

        Why it matters: Callers fix every field in one round trip.
        """
        result = MessageService.append(tenant, project_channel.uuid, alice.uuid, "video", "   ", [1])

        assert result.error_code == "INVALID_MESSAGE"
        assert set(result.details) == {"type", "content", "metadata"}
        assert Message.objects.count() == 0

    def test_publishes_after_commit(self, tenant, alice, project_channel, django_capture_on_commit_callbacks):
        """
        The message.sent event is queued for after the transaction commits.

        Why it matters: Subscribers must never see a rolled-back message.
        """
        with django_capture_on_commit_callbacks() as callbacks:
            append(tenant, project_channel, alice, "Hello")

        assert len(callbacks) == 1


class TestMessageServiceSendToCustomer:
    """Tests for MessageService.send_to_customer()."""

    def test_opens_general_channel_once(self, tenant, alice, bob):
        """
        The first direct message creates the pair's general channel; later ones reuse it.

        Why it matters: Email-addressed messaging needs no channel bookkeeping.
        """
        first = MessageService.send_to_customer(
            tenant, "alice@example.com", "bob@example.com", "text", "Hi Bob"
        )
        second = MessageService.send_to_customer(
            tenant, "Bob@Example.com", "alice@example.com", "text", "Hi Alice"
        )

        assert first.success is True
        assert second.success is True
        channel = first.data.channel
        assert channel.channel_type == ChannelType.GENERAL
        assert participant_ids(channel) == {alice.uuid, bob.uuid}
        assert second.data.channel.pk == channel.pk
        assert second.data.sender == bob
        assert Channel.objects.count() == 1

    def test_uses_existing_general_channel(self, tenant, alice, bob, project_channel):
        """
        A general channel provisioned earlier receives the message.

        Why it matters: Direct messages join the pair's default conversation.
        """
        general = ChannelService.find_general(tenant, [alice.uuid, bob.uuid]).data

        result = MessageService.send_to_customer(
            tenant, "alice@example.com", "bob@example.com", "text", "Hi"
        )

        assert result.data.channel.pk == general.pk
        general.refresh_from_db()
        assert general.last_activity_at == result.data.created_at

    def test_unknown_emails_are_listed(self, tenant, alice):
        """
        Every unknown email is reported and nothing is written.

        Why it matters: Callers learn which address is wrong.
        """
        result = MessageService.send_to_customer(
            tenant, "alice@example.com", "Nobody@example.com", "text", "Hi"
        )

        assert result.error_code == "CUSTOMER_NOT_FOUND"
        assert result.details == {"missing": ["nobody@example.com"]}
        assert Channel.objects.count() == 0

    def test_other_clients_customers_are_unknown(self, tenant, alice, outsider):
        """
        A recipient email from another tenant is not found.

        Why it matters: Direct messages cannot cross tenants.
        """
        result = MessageService.send_to_customer(
            tenant, "alice@example.com", outsider.email, "text", "Hi"
        )

        assert result.error_code == "CUSTOMER_NOT_FOUND"

    def test_sender_and_recipient_must_differ(self, tenant, alice):
        """
        Messaging yourself is rejected.

        Why it matters: A channel needs two distinct participants.
        """
        result = MessageService.send_to_customer(
            tenant, "alice@example.com", "ALICE@example.com", "text", "Hi"
        )

        assert result.error_code == "INVALID_PARTICIPANTS"

    def test_invalid_message_creates_no_channel(self, tenant, alice, bob):
        """
        Message validation happens before the channel is opened.

        Why it matters: A rejected message leaves no empty channel behind.
        """
        result = MessageService.send_to_customer(
            tenant, "alice@example.com", "bob@example.com", "text", "  "
        )

        assert result.error_code == "INVALID_MESSAGE"
        assert Channel.objects.count() == 0


class TestMessageServiceListing:
    """Tests for list_for_channel(), list_for_customer() and list_between_customers()."""

    def test_channel_history_oldest_first(self, tenant, alice, bob, project_channel):
        """
        Channel history reads chronologically.

        Why it matters: Chat transcripts are read top to bottom.
        """
        first = append(tenant, project_channel, alice, "one")
        second = append(tenant, project_channel, bob, "two")

        page = MessageService.list_for_channel(tenant, project_channel.uuid, limit=10).data

        assert page.items == [first, second]

    def test_customer_history_newest_first(self, tenant, alice, bob, project_channel):
        """
        A customer's sent messages come back newest first, only theirs.

        Why it matters: Activity feeds show the latest message first.
        """
        first = append(tenant, project_channel, alice, "one")
        append(tenant, project_channel, bob, "two")
        third = append(tenant, project_channel, alice, "three")

        page = MessageService.list_for_customer(tenant, alice.uuid, limit=10).data

        assert page.items == [third, first]

    def test_channel_history_pagination(self, tenant, alice):
        """
        starting_after continues after the cursor message.

        Why it matters: Long transcripts are loaded page by page.
        """
        channel = ChannelFactory(client=tenant, participants=[alice, CustomerFactory(client=tenant)])
        messages = MessageFactory.create_batch(5, channel=channel, sender=alice)

        page = MessageService.list_for_channel(
            tenant, channel.uuid, limit=2, starting_after=messages[1].uuid
        ).data

        assert page.items == messages[2:4]
        assert page.has_more is True
        assert page.total_count == 5

    def test_unknown_channel_history(self, tenant):
        """
        History of an unknown channel is CHANNEL_NOT_FOUND.

        Why it matters: The listing never silently returns an empty page.
        """
        result = MessageService.list_for_channel(tenant, uuid.uuid4(), limit=10)

        assert result.error_code == "CHANNEL_NOT_FOUND"

    def test_between_customers_covers_shared_channels(self, tenant, alice, bob, carol, project_channel):
        """
        The conversation holds both customers' messages in channels they share.

        Why it matters: A third participant's messages and channels without
        the other customer are not part of the pair's conversation.
        """
        group = resolve(tenant, "general", [alice.uuid, bob.uuid, carol.uuid]).channel
        with_carol = resolve(tenant, "general", [alice.uuid, carol.uuid]).channel

        first = append(tenant, project_channel, alice, "one")
        second = append(tenant, group, bob, "two")
        append(tenant, group, carol, "not theirs")
        append(tenant, with_carol, alice, "not shared")

        page = MessageService.list_between_customers(
            tenant, "bob@example.com", "alice@example.com", limit=10
        ).data

        assert page.items == [second, first]
        assert page.total_count == 2

    def test_between_unknown_customers(self, tenant, alice):
        """
        Unknown emails are listed in a CUSTOMER_NOT_FOUND failure.

        Why it matters: Callers learn which side of the conversation is wrong.
        """
        result = MessageService.list_between_customers(
            tenant, "alice@example.com", "ghost@example.com", limit=10
        )

        assert result.error_code == "CUSTOMER_NOT_FOUND"
        assert result.details == {"missing": ["ghost@example.com"]}
