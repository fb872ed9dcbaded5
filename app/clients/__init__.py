"""
Clients app: tenants of the messaging API.

Every customer, channel and message is owned by one Client. Requests
authenticate as a client with a Bearer token, the client's public key
and an Origin matching the client's registered domain.

Usage:
    from clients.services import ClientService

    client = ClientService.create_client(name="Acme", domain="acme.com")
    issued = ClientService.issue_token(client)
    issued.plaintext  # shown once
"""
