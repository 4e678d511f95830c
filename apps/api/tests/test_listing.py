from __future__ import annotations

from datetime import datetime, timezone

import pytest

from opsdesk.listing import (
    ListingSpec,
    ListQuery,
    UnknownSortKeyError,
    apply_query,
    clamp_page,
    field_getter,
    filter_records,
    paginate,
    sort_records,
)
from opsdesk.tasks.listing import TASK_LISTING
from opsdesk.teams.listing import TEAM_LISTING
from opsdesk.users.listing import USER_LISTING


def _tasks(count: int) -> list[dict]:
    return [
        {"id": f"t{index}", "title": f"Task {index}", "description": "", "status": "assigned", "priority": "low"}
        for index in range(1, count + 1)
    ]


def test_ten_records_with_page_size_six_split_into_two_pages() -> None:
    spec = ListingSpec(search_fields=("title",), page_size=6)
    records = _tasks(10)

    first = apply_query(records, ListQuery(page=1), spec)
    second = apply_query(records, ListQuery(page=2), spec)

    assert [item["id"] for item in first.items] == ["t1", "t2", "t3", "t4", "t5", "t6"]
    assert [item["id"] for item in second.items] == ["t7", "t8", "t9", "t10"]
    assert second.total == 10
    assert second.total_pages == 2
    assert first.has_next and not second.has_next
    assert second.has_previous


def test_page_out_of_range_is_clamped() -> None:
    records = _tasks(10)

    assert paginate(records, 5, 6).page == 2
    assert paginate(records, 0, 6).page == 1
    assert paginate(records, -3, 6).items[0]["id"] == "t1"


def test_empty_list_is_page_one_with_no_pages() -> None:
    page = paginate([], 3, 8)

    assert page.page == 1
    assert page.items == []
    assert page.total == 0
    assert page.total_pages == 0
    assert clamp_page(4, 0) == 1


def test_search_is_case_insensitive_substring_over_search_fields() -> None:
    records = [
        {"id": "1", "full_name": "Asha Rao", "email": "asha@example.com", "is_active": True},
        {"id": "2", "full_name": "Ben Ortiz", "email": "ben@EXAMPLE.com", "is_active": True},
        {"id": "3", "full_name": "Carla Diaz", "email": "carla@corp.io", "is_active": False},
    ]

    by_name = filter_records(records, ListQuery(search_term="RAO"), USER_LISTING)
    by_email = filter_records(records, ListQuery(search_term="example"), USER_LISTING)
    padded = filter_records(records, ListQuery(search_term=" RAO "), USER_LISTING)

    assert [record["id"] for record in by_name] == ["1"]
    assert [record["id"] for record in by_email] == ["1", "2"]
    assert padded == []


def test_whitespace_search_is_matched_literally() -> None:
    records = [
        {"id": "1", "title": "Fix login", "description": "", "status": "assigned", "priority": "low"},
        {"id": "2", "title": "Deploy", "description": "", "status": "assigned", "priority": "low"},
    ]

    matched = filter_records(records, ListQuery(search_term=" "), TASK_LISTING)

    assert [record["id"] for record in matched] == ["1"]


def test_empty_query_filters_nothing_and_keeps_order() -> None:
    records = _tasks(7)[::-1]
    records[2]["status"] = "blocked"

    assert filter_records(records, ListQuery(), TASK_LISTING) == records
    assert filter_records(records, ListQuery(search_term="", status_filter="all"), TASK_LISTING) == records


def test_status_filter_uses_entity_status_accessor() -> None:
    records = [
        {"id": "1", "name": "Ops", "description": "", "is_active": True, "member_ids": []},
        {"id": "2", "name": "Sales", "description": "", "is_active": False, "member_ids": []},
    ]

    inactive = filter_records(records, ListQuery(status_filter="inactive"), TEAM_LISTING)
    everything = filter_records(records, ListQuery(status_filter="all"), TEAM_LISTING)

    assert [record["id"] for record in inactive] == ["2"]
    assert len(everything) == 2


def test_search_and_status_changes_reset_page() -> None:
    query = ListQuery(page=4)

    assert query.with_search("abc").page == 1
    assert query.with_status("completed").page == 1
    assert query.with_page(3).with_sort("title").page == 3


def test_sort_is_stable_and_places_missing_values_last() -> None:
    records = [
        {"id": "a", "last_login": None},
        {"id": "b", "last_login": datetime(2026, 3, 1, tzinfo=timezone.utc)},
        {"id": "c", "last_login": datetime(2026, 1, 1, tzinfo=timezone.utc)},
        {"id": "d", "last_login": datetime(2026, 3, 1, tzinfo=timezone.utc)},
    ]
    key = field_getter("last_login")

    ascending = sort_records(records, key, "asc")
    descending = sort_records(records, key, "desc")

    assert [record["id"] for record in ascending] == ["c", "b", "d", "a"]
    assert [record["id"] for record in descending] == ["b", "d", "c", "a"]


@pytest.mark.parametrize("sort_order", ["asc", "desc"])
def test_resorting_a_sorted_list_is_a_no_op(sort_order: str) -> None:
    records = [
        {"id": "1", "title": "b", "description": "", "status": "assigned", "priority": "high"},
        {"id": "2", "title": "a", "description": "", "status": "assigned", "priority": "low"},
        {"id": "3", "title": "c", "description": "", "status": "assigned", "priority": "high"},
        {"id": "4", "title": "d", "description": "", "status": "assigned", "priority": "critical"},
        {"id": "5", "title": "e", "description": "", "status": "assigned", "priority": "low"},
    ]
    key = TASK_LISTING.resolve_sort_key("priority")

    once = sort_records(records, key, sort_order)
    twice = sort_records(once, key, sort_order)

    assert [record["id"] for record in twice] == [record["id"] for record in once]


def test_string_sort_ignores_case() -> None:
    records = [{"id": "1", "full_name": "bob"}, {"id": "2", "full_name": "Alice"}, {"id": "3", "full_name": "carl"}]

    ordered = sort_records(records, USER_LISTING.resolve_sort_key("name"), "asc")

    assert [record["full_name"] for record in ordered] == ["Alice", "bob", "carl"]


def test_task_priority_sorts_by_severity_not_alphabetically() -> None:
    records = [
        {"id": "1", "title": "a", "description": "", "status": "assigned", "priority": "medium"},
        {"id": "2", "title": "b", "description": "", "status": "assigned", "priority": "critical"},
        {"id": "3", "title": "c", "description": "", "status": "assigned", "priority": "low"},
        {"id": "4", "title": "d", "description": "", "status": "assigned", "priority": "high"},
    ]

    page = apply_query(records, ListQuery(sort_by="priority", sort_order="desc"), TASK_LISTING)

    assert [item["priority"] for item in page.items] == ["critical", "high", "medium", "low"]


def test_no_sort_key_keeps_input_order() -> None:
    records = _tasks(3)[::-1]

    assert sort_records(records, None) == records


def test_unknown_sort_key_is_rejected() -> None:
    with pytest.raises(UnknownSortKeyError) as exc_info:
        apply_query(_tasks(2), ListQuery(sort_by="colour"), TASK_LISTING)

    assert exc_info.value.sort_by == "colour"
    assert "priority" in exc_info.value.allowed


def test_entity_page_sizes() -> None:
    assert USER_LISTING.page_size == 8
    assert TEAM_LISTING.page_size == 6
    assert TASK_LISTING.page_size == 10
