from __future__ import annotations

import argparse
import io
import logging
import os

from dotenv import load_dotenv
from PIL import Image, UnidentifiedImageError

from . import __version__
from .api.calendar_api import CalendarAPI
from .api.contacts_api import ContactsAPI
from .api.mail_api import MailAPI
from .api.zimbra_api import AGENT_NAME, ZimbraAPIService
from .utils.credential_store import ADMIN_URL_KEY, DEFAULT_STORE_PATH, JsonCredentialStore
from .utils.file_utils import ensure_directory, sanitize_filename
from .utils.http_client import HttpClient

load_dotenv()


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value


def _env_int(name: str) -> int | None:
    value = _env_str(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _env_bool(name: str) -> bool:
    value = _env_str(name)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Query a Zimbra server for contacts, events and emails.")
    parser.add_argument("--user", default=_env_str("ZIMBRA_USER") or "default", help="Local user the session is stored under")
    parser.add_argument("--url", default=_env_str("ZIMBRA_URL"), help="Zimbra base URL, e.g. https://mail.example.com")
    parser.add_argument("--login", default=_env_str("ZIMBRA_LOGIN"), help="Zimbra account name used by --connect")
    parser.add_argument("--password", default=_env_str("ZIMBRA_PASSWORD"), help="Zimbra password used by --connect")
    store_env = _env_str("ZIMBRA_STORE")
    parser.add_argument(
        "--store",
        default=os.path.expanduser(store_env) if store_env else DEFAULT_STORE_PATH,
        help="JSON file holding sessions and tokens between runs",
    )
    parser.add_argument("--timeout", type=int, default=_env_int("ZIMBRA_TIMEOUT") or 10, help="HTTP timeout in seconds")
    parser.add_argument("--verbose", action="store_true", default=_env_bool("ZIMBRA_VERBOSE"), help="Enable debug logging")

    parser.add_argument("--connect", action="store_true", help="Log in with --login/--password and store the session")
    parser.add_argument("--disconnect", action="store_true", help="Forget the stored session")
    parser.add_argument("--status", action="store_true", help="Report whether the user is connected")
    parser.add_argument("--list-contacts", action="store_true", help="List all contacts")
    parser.add_argument("--search-contacts", metavar="QUERY", help="Search contacts")
    parser.add_argument("--avatar", type=int, metavar="ID", help="Download the picture of a contact")
    parser.add_argument("--avatar-output", help="Where to save the contact picture (format from extension)")
    parser.add_argument("--unread", action="store_true", help="List unread emails")
    parser.add_argument("--unread-count", action="store_true", help="Print the number of unread emails")
    parser.add_argument("--search-emails", metavar="QUERY", help="Search the inbox")
    parser.add_argument("--events", action="store_true", help="List appointments of the next 30 days")
    parser.add_argument("--since", type=int, help="Start of the event window (epoch seconds, default now)")
    parser.add_argument("--offset", type=int, default=0, help="Pagination offset for email listings")
    parser.add_argument("--limit", type=int, default=10, help="Pagination size for email listings")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def print_contacts(contacts: list[dict]) -> None:
    if not contacts:
        logging.info("No contacts found.")
        return
    logging.info("%-10s | %-30s | %s", "ID", "Name", "Email")
    logging.info("%s", "-" * 70)
    for contact in contacts:
        attrs = contact.get("_attrs") or {}
        name = attrs.get("fullName") or " ".join(
            part for part in (attrs.get("firstName"), attrs.get("lastName")) if part
        )
        logging.info("%-10s | %-30s | %s", contact.get("id"), name, attrs.get("email") or "")


def print_emails(emails: list[dict]) -> None:
    if not emails:
        logging.info("No emails found.")
        return
    for email in emails:
        senders = [addr.get("a") for addr in email.get("e") or [] if addr.get("t") == "f"]
        logging.info("%-10s | %-30s | %s", email.get("id"), ", ".join(filter(None, senders)), email.get("su") or "")


def print_events(events: list[dict]) -> None:
    if not events:
        logging.info("No upcoming events.")
        return
    for event in events:
        start = (event.get("inst") or [{}])[0].get("s")
        logging.info("%-15s | %s", start, event.get("name") or "")


def save_avatar(body: bytes, output_file: str) -> str:
    """Writes the picture, converting it to the format implied by ``output_file``."""

    ensure_directory(os.path.dirname(os.path.abspath(output_file)) or ".")
    try:
        with Image.open(io.BytesIO(body)) as img:
            img.convert("RGB").save(output_file)
    except (UnidentifiedImageError, ValueError, OSError) as exc:
        logging.warning("Could not convert avatar (%s), saving raw bytes", exc)
        with open(output_file, "wb") as handle:
            handle.write(body)
    return output_file


def run(args: argparse.Namespace, service: ZimbraAPIService) -> int:
    user = args.user
    contacts_api = ContactsAPI(service)
    mail_api = MailAPI(service)
    calendar_api = CalendarAPI(service)

    if args.disconnect:
        service.disconnect(user)
        return 0

    if args.connect:
        if not args.login or not args.password:
            logging.error("--connect requires --login and --password")
            return 2
        result = service.connect(user, args.login, args.password, url=args.url)
        if "error" in result:
            logging.error("Login failed: %s", result["error"])
            return 1
        logging.info("Connected %s to %s", user, service.get_base_url(user))

    if args.status:
        state = "connected" if service.is_user_connected(user) else "not connected"
        logging.info("%s is %s (%s)", user, state, service.get_base_url(user) or "no URL")
        return 0

    if not service.is_user_connected(user):
        if args.connect:
            return 0
        logging.error("User %s is not connected; run with --connect first.", user)
        return 1

    if args.list_contacts:
        result = contacts_api.get_contacts(user)
        if "error" in result:
            logging.error("Failed to list contacts: %s", result["error"])
            return 1
        print_contacts(result.get("cn") or [])

    if args.search_contacts:
        print_contacts(contacts_api.search_contacts(user, args.search_contacts))

    if args.avatar is not None:
        result = contacts_api.get_contact_avatar(user, args.avatar)
        if "error" in result:
            logging.error("Failed to fetch avatar %s: %s", args.avatar, result["error"])
            return 1
        output = args.avatar_output or sanitize_filename(f"avatar_{args.avatar}.png")
        logging.info("Saved avatar to %s", save_avatar(result["body"], output))

    if args.unread:
        print_emails(mail_api.get_unread_emails(user, args.offset, args.limit))

    if args.unread_count:
        logging.info("Unread emails: %s", mail_api.get_unread_email_count(user))

    if args.search_emails:
        print_emails(mail_api.search_emails(user, args.search_emails, args.offset, args.limit))

    if args.events:
        print_events(calendar_api.get_upcoming_events(user, args.since))

    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    store = JsonCredentialStore(args.store)
    if args.url and not store.get_app_value(ADMIN_URL_KEY):
        store.set_app_value(ADMIN_URL_KEY, args.url.rstrip("/"))

    with HttpClient(user_agent=f"{AGENT_NAME}/{__version__}", timeout=args.timeout) as http_client:
        service = ZimbraAPIService(http_client, store)
        return run(args, service)


if __name__ == "__main__":
    raise SystemExit(main())
