"""CraftHub — identity and access layer for a customer/artisan marketplace.

Resolves logins (password, one-time code, OAuth provider) to a single
durable user, provisions customer/artisan sub-profiles, and gates every
request through token verification and per-route access checks.
"""

__version__ = "0.1.0"
