import pytest
from pydantic import ValidationError

from order_api.models import (
    OrderActionRequest,
    OrderCreateRequest,
    OrderListQuery,
    OrderPage,
    OrderStatusRequest,
)


def test_create_request_normalizes_text_fields():
    payload = OrderCreateRequest(
        customerName="  Jane Smith  ",
        trackingId="  ord-abc-1 ",
        customerEmail="  Jane.Smith@Example.COM ",
        customerPhone=" 555-0100 ",
        orderTotal=10,
    )
    assert payload.customerName == "Jane Smith"
    assert payload.trackingId == "ORD-ABC-1"
    assert payload.customerEmail == "jane.smith@example.com"
    assert payload.customerPhone == "555-0100"


def test_create_request_rejects_negative_total():
    with pytest.raises(ValidationError):
        OrderCreateRequest(customerName="Jane", orderTotal=-1)


def test_create_request_accepts_zero_total():
    assert OrderCreateRequest(customerName="Jane", orderTotal=0).orderTotal == 0


@pytest.mark.parametrize("field,value", [
    ("orderType", "fax"),
    ("action", "lost"),
    ("status", "archived"),
])
def test_create_request_rejects_unknown_enum_values(field, value):
    with pytest.raises(ValidationError):
        OrderCreateRequest(customerName="Jane", orderTotal=1, **{field: value})


def test_blank_enum_values_count_as_not_sent():
    payload = OrderCreateRequest(customerName="Jane", orderTotal=1, action="", status="")
    assert payload.action is None
    assert payload.status is None


def test_create_request_rejects_invalid_email():
    with pytest.raises(ValidationError):
        OrderCreateRequest(customerName="Jane", orderTotal=1, customerEmail="not-an-email")


def test_empty_email_is_allowed():
    assert OrderCreateRequest(customerEmail="").customerEmail == ""


def test_length_limits():
    with pytest.raises(ValidationError):
        OrderCreateRequest(customerName="x" * 101, orderTotal=1)
    with pytest.raises(ValidationError):
        OrderCreateRequest(customerName="Jane", orderTotal=1, description="x" * 501)
    # Surrounding whitespace is trimmed before the length check
    assert OrderCreateRequest(customerName=" " + "x" * 100 + " ").customerName == "x" * 100


def test_patch_requests():
    assert OrderActionRequest(action="shipped").action == "shipped"
    assert OrderActionRequest(action="").action is None
    assert OrderStatusRequest().status is None
    with pytest.raises(ValidationError):
        OrderStatusRequest(status="deleted")


def test_list_query_defaults():
    query = OrderListQuery()
    assert query.page == 1
    assert query.limit == 10
    assert query.sortBy == "createdAt"
    assert query.descending
    assert query.offset == 0
    assert query.filters() == {}


def test_list_query_offset_and_filters():
    query = OrderListQuery(page=3, limit=5, sortOrder="asc", status="active", orderType="phone")
    assert query.offset == 10
    assert not query.descending
    assert query.filters() == {"status": "active", "orderType": "phone"}


@pytest.mark.parametrize("total,limit,pages", [(0, 10, 0), (12, 5, 3), (10, 5, 2), (1, 10, 1)])
def test_page_count(total, limit, pages):
    assert OrderPage(items=[], total=total, page=1, limit=limit).pages == pages
