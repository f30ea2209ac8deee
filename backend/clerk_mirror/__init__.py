"""Local mirror of Clerk identity data, kept in sync through Clerk webhooks."""

__version__ = "0.1.0"
