"""
URL configuration for chat API.

URL Structure:
    Channels:
        /channels/                          GET, POST
        /channels/{id}/                     GET
        /channels/customer/{customer_id}/   GET

    Messages:
        /messages/                          POST
        /messages/send-to-customer/         POST
        /messages/channel/{channel_id}/     GET
        /messages/customer/{customer_id}/   GET
        /messages/between/{email1}/{email2}/ GET

All URLs are prefixed with /api/v1/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from chat.views import ChannelViewSet, MessageViewSet

router = SimpleRouter()
router.register(r"channels", ChannelViewSet, basename="channel")
router.register(r"messages", MessageViewSet, basename="message")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
]
