"""API layer for authentication, contacts, calendar and mail."""

from .auth_api import AuthAPI
from .calendar_api import CalendarAPI
from .contacts_api import ContactsAPI
from .mail_api import MailAPI
from .zimbra_api import ZimbraAPIService

__all__ = ["AuthAPI", "CalendarAPI", "ContactsAPI", "MailAPI", "ZimbraAPIService"]
