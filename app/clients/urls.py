"""URL configuration for the clients app."""

from django.urls import path

from clients.views import ClientDetailView

app_name = "clients"

urlpatterns = [
    path("client/<uuid:client_id>/", ClientDetailView.as_view(), name="client-detail"),
]
