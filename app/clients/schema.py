"""
drf-spectacular extension describing tenant authentication.

Registered by importing this module from ClientsConfig.ready().
"""

from drf_spectacular.extensions import OpenApiAuthenticationExtension


class ClientTokenAuthenticationScheme(OpenApiAuthenticationExtension):
    """Documents the Bearer token; X-Public-Key is listed as a second scheme."""

    target_class = "clients.authentication.ClientTokenAuthentication"
    name = ["ClientToken", "PublicKey"]

    def get_security_definition(self, auto_schema):
        return [
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Token issued with the create_client command.",
            },
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-Public-Key",
                "description": "Public key of the client the token belongs to.",
            },
        ]
