import pytest

from opsdesk.seed import frontend_rows
from opsdesk.tableview import (
    ListQuery,
    PageWindow,
    filter_records,
    page_links,
    paginate,
    stringify_search_value,
)

FIELDS = ["project", "projectId", "status"]


def test_forty_eight_records_make_five_pages_with_eight_on_the_last():
    rows = frontend_rows()
    sizes = []
    for page in range(1, 6):
        window = paginate(rows, "", page, 10, FIELDS)
        assert window.page_count == 5
        assert window.total_matches == 48
        sizes.append(len(window.page_items))
    assert sizes == [10, 10, 10, 10, 8]


def test_search_is_case_insensitive_and_exhaustive():
    rows = frontend_rows()
    returned = []
    window = paginate(rows, "REALSTATE 1", 1, 10, FIELDS)
    for page in range(1, window.page_count + 1):
        returned.extend(paginate(rows, "REALSTATE 1", page, 10, FIELDS).page_items)

    assert returned
    for record in returned:
        assert "realstate 1" in record["project"].lower()
    ids = {r["id"] for r in returned}
    for record in rows:
        if record["id"] not in ids:
            assert "realstate 1" not in record["project"].lower()


def test_page_counts_cover_every_match():
    rows = frontend_rows()
    for size in (1, 7, 10, 48, 100):
        window = paginate(rows, "completed", 1, size, FIELDS)
        total = sum(len(paginate(rows, "completed", p, size, FIELDS).page_items) for p in range(1, window.page_count + 1))
        assert total == window.total_matches == 8
        assert window.page_count == max(1, -(-8 // size))


def test_out_of_range_pages_clamp():
    rows = frontend_rows()
    assert paginate(rows, "", 0, 10, FIELDS) == paginate(rows, "", 1, 10, FIELDS)
    assert paginate(rows, "", 10, 10, FIELDS) == paginate(rows, "", 5, 10, FIELDS)
    assert paginate(rows, "", -3, 10, FIELDS).page_number == 1


def test_empty_result_is_single_empty_page():
    window = paginate(frontend_rows(), "no such text", 3, 10, FIELDS)
    assert window == PageWindow(page_items=[], page_number=1, page_count=1, total_matches=0, page_size=10)
    assert window.first_index == 0
    assert window.last_index == 0
    assert not window.has_previous
    assert not window.has_next


def test_repeated_calls_are_identical():
    rows = frontend_rows()
    assert paginate(rows, "pending", 2, 3, FIELDS) == paginate(rows, "pending", 2, 3, FIELDS)


@pytest.mark.parametrize("size", [0, -1, 2.5, True, "10"])
def test_invalid_page_size_raises(size):
    with pytest.raises(ValueError):
        paginate(frontend_rows(), "", 1, size, FIELDS)


def test_whitespace_query_does_not_filter():
    rows = frontend_rows()
    assert filter_records(rows, "   ", FIELDS) == rows


def test_query_is_matched_without_trimming():
    rows = [{"name": "Acme Corp"}, {"name": "Acme"}]
    assert filter_records(rows, "acme ", ["name"]) == [{"name": "Acme Corp"}]


def test_non_string_fields_are_searchable():
    rows = [{"n": 150000, "flag": True, "gone": None}, {"n": 2.5, "flag": False}]
    assert filter_records(rows, "1500", ["n"]) == [rows[0]]
    assert filter_records(rows, "true", ["flag"]) == [rows[0]]
    assert filter_records(rows, "2.5", ["n"]) == [rows[1]]
    assert filter_records(rows, "none", ["gone"]) == []


def test_fields_outside_the_searchable_set_are_ignored():
    rows = [{"name": "Acme", "secret": "needle"}]
    assert filter_records(rows, "needle", ["name"]) == []


def test_stringify_search_value():
    assert stringify_search_value(None) == ""
    assert stringify_search_value(False) == "false"
    assert stringify_search_value(10) == "10"
    assert stringify_search_value(10.0) == "10"
    assert stringify_search_value("Text") == "Text"


def test_page_links_slide_with_current_page():
    def window(page, count):
        return PageWindow(page_items=[{}], page_number=page, page_count=count, total_matches=count, page_size=1)

    assert page_links(window(1, 3)) == [1, 2, 3]
    assert page_links(window(1, 9)) == [1, 2, 3, 4, 5]
    assert page_links(window(6, 9)) == [4, 5, 6, 7, 8]
    assert page_links(window(9, 9)) == [5, 6, 7, 8, 9]


def test_list_query_resets_page_on_new_search():
    query = ListQuery.from_params({"q": "real", "page": "4"})
    assert query == ListQuery("real", 4)
    assert query.with_search("other") == ListQuery("other", 1)
    assert query.with_page(2) == ListQuery("real", 2)
    assert ListQuery.from_params({"page": "abc"}) == ListQuery("", 1)


def test_list_query_run_uses_engine():
    window = ListQuery("", 5).run(frontend_rows(), 10, FIELDS)
    assert window.page_number == 5
    assert [r["id"] for r in window.page_items] == list(range(41, 49))
