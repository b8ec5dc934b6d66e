import pytest

from fetchpage.exceptions import InvalidPaginationParameter
from fetchpage.window import PaginationRequest, PaginationWindow, resolve


def test_defaults():
    """Given no pagination arguments, ensure the first page of 10 rows is requested"""
    assert resolve() == PaginationWindow(limit=10, offset=0, page=1, source="default")


@pytest.mark.parametrize("page", [1, 2, 3, 7, 100])
@pytest.mark.parametrize("page_size", [1, 10, 15, 250])
def test_page_sets_offset(page, page_size):
    window = resolve(page=page, page_size=page_size)
    assert window.offset == page_size * (page - 1)
    assert window.page == page
    assert window.source == "page"


@pytest.mark.parametrize("offset", [0, 1, 14, 15, 16, 30, 44, 45, 1000])
@pytest.mark.parametrize("limit", [1, 10, 15])
def test_offset_sets_page(limit, offset):
    window = resolve(limit=limit, offset=offset)
    assert window.page == offset // limit + 1
    assert window.offset == offset
    assert window.source == "offset"


def test_page_wins_over_offset():
    """When both are supplied, the offset is recomputed from the page"""
    assert resolve(limit=15, page=3, offset=7) == PaginationWindow(
        limit=15, offset=30, page=3, source="page"
    )


def test_default_limit_is_configurable():
    assert resolve(page=2, default_limit=25).offset == 25


@pytest.mark.parametrize(
    "params,field",
    [
        (dict(limit=0), "limit"),
        (dict(limit=-5), "limit"),
        (dict(page_size=0), "limit"),
        (dict(page=0), "page"),
        (dict(page=-1, limit=15), "page"),
        (dict(offset=-1), "offset"),
        (dict(page=2, offset=-1), "offset"),
    ],
)
def test_out_of_range_raises(params, field):
    with pytest.raises(InvalidPaginationParameter) as exc_info:
        resolve(**params)
    assert exc_info.value.field == field


def test_error_carries_requested_value():
    with pytest.raises(InvalidPaginationParameter, match="Results start at page 1") as exc_info:
        resolve(page=0)
    assert exc_info.value.value == 0
    assert isinstance(exc_info.value, ValueError)


def test_max_limit():
    assert resolve(limit=100, max_limit=100).limit == 100
    with pytest.raises(InvalidPaginationParameter, match="not be greater than 100"):
        resolve(limit=101, max_limit=100)


def test_query_string_values_are_read_as_integers():
    """Values straight from a query string resolve like their integer counterparts"""
    assert resolve({"page": "4", "pageSize": "15"}) == resolve(page=4, limit=15)


@pytest.mark.parametrize("value", ["abc", "1.5", [1], True, False, 15.0, 2.5])
def test_non_integer_raises(value):
    with pytest.raises(InvalidPaginationParameter) as exc_info:
        resolve(limit=value)
    assert exc_info.value.field == "limit"


def test_page_size_and_limit_are_synonyms():
    assert resolve(page_size=15, page=2) == resolve(limit=15, page=2)
    assert resolve(page_size=15, limit=15).limit == 15
    with pytest.raises(InvalidPaginationParameter) as exc_info:
        resolve(page_size=15, limit=20)
    assert exc_info.value.field == "page_size"


def test_keyword_arguments_override_request():
    request = PaginationRequest(page=2, limit=15)
    assert resolve(request, page=3).offset == 30
    assert resolve(request).offset == 15


def test_request_is_not_mutated():
    request = PaginationRequest(page=2, offset=99)
    resolve(request)
    assert request.offset == 99


def test_booleans_are_rejected_in_a_request_mapping():
    with pytest.raises(InvalidPaginationParameter) as exc_info:
        resolve({"page": True})
    assert exc_info.value.field == "page"
    assert exc_info.value.value is True


@pytest.mark.parametrize(
    "request_data,overrides",
    [
        ({"pageSize": 15}, dict(page_size=20)),
        ({"page_size": 15}, dict(pageSize=20)),
        ({"pageSize": 15}, dict(pageSize=20)),
    ],
)
def test_keyword_arguments_override_either_spelling(request_data, overrides):
    assert resolve(request_data, **overrides).limit == 20


def test_unknown_keyword_argument_raises():
    with pytest.raises(InvalidPaginationParameter, match="Unknown pagination parameter") as exc_info:
        resolve(limt=15)
    assert exc_info.value.field == "limt"
    assert exc_info.value.value == 15


def test_unknown_request_keys_are_ignored():
    """query strings carry filter parameters alongside the paging ones"""
    assert resolve({"page": "2", "color": "red"}).offset == 10
