"""
Customers app: participant identities within a client.

A customer belongs to exactly one client. Emails are unique per client,
compared case-insensitively (stored lowercased). Customers are soft
deleted so channel memberships and messages keep their sender.

Usage:
    from customers.services import CustomerService

    alice = CustomerService.create(client, name="Alice", email="Alice@Example.com")
    alice.email  # "alice@example.com"
"""
