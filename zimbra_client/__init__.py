"""Client for the Zimbra REST and SOAP APIs with transparent re-authentication."""

__version__ = "0.1.0"
