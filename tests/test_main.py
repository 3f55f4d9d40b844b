import io
import logging

from fakes import auth_response, json_response
from PIL import Image

from zimbra_client.api.zimbra_api import ZimbraAPIService
from zimbra_client.main import parse_args, run, save_avatar
from zimbra_client.models import HttpResponse
from zimbra_client.utils.credential_store import InMemoryCredentialStore

from conftest import USER


def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGBA", (4, 4), (255, 0, 0, 255)).save(buffer, "PNG")
    return buffer.getvalue()


def test_env_defaults(monkeypatch):
    monkeypatch.setenv("ZIMBRA_USER", "carol")
    monkeypatch.setenv("ZIMBRA_TIMEOUT", "not-a-number")
    monkeypatch.setenv("ZIMBRA_VERBOSE", "yes")

    args = parse_args(["--status"])

    assert args.user == "carol"
    assert args.timeout == 10
    assert args.verbose is True


def test_connect_then_list_unread(http, caplog):
    store = InMemoryCredentialStore()
    service = ZimbraAPIService(http, store)
    http.queue(
        auth_response("tok"),
        json_response({"m": [{"id": "1", "d": 1, "su": "Hello", "e": [{"t": "f", "a": "bob@example.com"}]}]}),
    )
    args = parse_args(
        ["--user", "dave", "--connect", "--url", "https://mail.example.com", "--login", "dave", "--password", "pw", "--unread"]
    )

    with caplog.at_level(logging.INFO):
        assert run(args, service) == 0

    assert service.is_user_connected("dave")
    assert "bob@example.com" in caplog.text
    assert "Hello" in caplog.text


def test_requires_connection(service, store, caplog):
    store.delete_user_value(USER, "token")
    args = parse_args(["--user", USER, "--unread"])

    with caplog.at_level(logging.ERROR):
        assert run(args, service) == 1
    assert "not connected" in caplog.text


def test_failed_connect(http, caplog):
    service = ZimbraAPIService(http, InMemoryCredentialStore())
    http.queue(json_response({"Body": {}}))
    args = parse_args(["--connect", "--url", "https://mail.example.com", "--login", "x", "--password", "y"])

    assert run(args, service) == 1


def test_disconnect(service):
    assert run(parse_args(["--user", USER, "--disconnect"]), service) == 0
    assert not service.is_user_connected(USER)


def test_avatar_is_converted_to_requested_format(service, http, tmp_path):
    http.queue(HttpResponse(status_code=200, body=png_bytes(), headers={"Content-Type": "image/png"}))
    output = tmp_path / "out" / "avatar.jpg"

    assert run(parse_args(["--user", USER, "--avatar", "7", "--avatar-output", str(output)]), service) == 0

    with Image.open(output) as img:
        assert img.format == "JPEG"


def test_unreadable_avatar_is_saved_raw(tmp_path):
    output = tmp_path / "avatar.png"
    save_avatar(b"not an image", str(output))
    assert output.read_bytes() == b"not an image"
