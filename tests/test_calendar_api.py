from fakes import json_response

from zimbra_client.api.calendar_api import (
    EVENT_WINDOW_MS,
    CalendarAPI,
    build_folder_query,
    sort_events,
)
from zimbra_client.utils.http_client import ClientError

from conftest import USER


def event(name, start):
    return {"name": name, "inst": [{"s": start}]}


def test_folder_query_lists_parents_then_children():
    folders = [{"id": 1, "folder": [{"id": 2}]}, {"id": 3}]
    assert build_folder_query(folders) == '(inid:"1" OR inid:"2" OR inid:"3")'


def test_folder_query_skips_entries_without_an_id():
    folders = [{"name": "shared", "folder": [{"name": "link"}, {"id": 2}, "junk"]}, "junk", {"id": 3}]
    assert build_folder_query(folders) == '(inid:"2" OR inid:"3")'


def test_events_sorted_by_first_instance():
    events = [event("c", 300), event("a", 100), event("b", 200)]
    assert [e["inst"][0]["s"] for e in sort_events(events)] == [100, 200, 300]


def test_equal_start_times_keep_server_order():
    events = [event("late", 500), event("first", 100), event("second", 100), event("third", 100)]
    assert [e["name"] for e in sort_events(events)] == ["first", "second", "third", "late"]


def test_events_without_instances_go_last():
    events = [{"name": "broken"}, event("a", 100)]
    assert [e["name"] for e in sort_events(events)] == ["a", "broken"]


def test_upcoming_events_searches_every_calendar(service, http):
    http.queue(
        json_response({"Body": {"GetFolderResponse": {"folder": [{"id": "10", "folder": [{"id": "11"}]}, {"id": "12"}]}}}),
        json_response({"Body": {"SearchResponse": {"appt": [event("b", 2000), event("a", 1000)]}}}),
    )

    events = CalendarAPI(service).get_upcoming_events(USER, since_ts=1700000000)

    assert [e["name"] for e in events] == ["a", "b"]
    folder_call, search_call = http.calls
    assert folder_call.envelope["Body"] == {"GetFolderRequest": {"_jsns": "urn:zimbraMail", "view": "appointment"}}
    assert search_call.envelope["Body"]["SearchRequest"] == {
        "_jsns": "urn:zimbraMail",
        "query": {"_content": '(inid:"10" OR inid:"11" OR inid:"12")'},
        "sortBy": "dateAsc",
        "fetch": "all",
        "offset": 0,
        "limit": 100,
        "types": "appointment",
        "calExpandInstStart": 1700000000000,
        "calExpandInstEnd": 1700000000000 + EVENT_WINDOW_MS,
    }


def test_upcoming_events_defaults_to_now(service, http, monkeypatch):
    monkeypatch.setattr("zimbra_client.api.calendar_api.time.time", lambda: 1000.5)
    http.queue(
        json_response({"Body": {"GetFolderResponse": {"folder": [{"id": "10"}]}}}),
        json_response({"Body": {"SearchResponse": {}}}),
    )

    assert CalendarAPI(service).get_upcoming_events(USER) == []
    assert http.calls[1].envelope["Body"]["SearchRequest"]["calExpandInstStart"] == 1000000


def test_upcoming_events_without_folders_skips_search(service, http):
    http.queue(json_response({"Body": {"GetFolderResponse": {}}}))

    assert CalendarAPI(service).get_upcoming_events(USER, since_ts=0) == []
    assert len(http.calls) == 1


def test_upcoming_events_on_error_returns_empty_list(service, http):
    http.queue(ClientError("Client error: 403", status_code=403))

    assert CalendarAPI(service).get_upcoming_events(USER, since_ts=0) == []


def test_events_that_are_not_objects_are_dropped():
    events = [event("b", 200), "junk", None, event("a", 100), {"name": "odd", "inst": ["junk"]}]
    assert [e["name"] for e in sort_events(events)] == ["a", "b", "odd"]


def test_upcoming_events_with_folders_lacking_ids_skips_search(service, http):
    http.queue(json_response({"Body": {"GetFolderResponse": {"folder": [{"name": "no id"}]}}}))

    assert CalendarAPI(service).get_upcoming_events(USER, since_ts=0) == []
    assert len(http.calls) == 1
