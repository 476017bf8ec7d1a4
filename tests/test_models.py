from datetime import datetime, timezone

from orderdesk.domain.models import Order, as_datetime
from orderdesk.domain.order_status import FulfillmentType, OrderStatus


def test_legacy_aliases_are_normalized():
    order = Order.from_document(
        "abcdef123",
        {
            "butcherId": "b7",
            "butcherName": "Kasap Veli",
            "userId": "u3",
            "userDisplayName": "Emre",
            "userPhone": "+90 555 000 1111",
            "deliveryMethod": "dineIn",
            "totalAmount": "42.5",
            "items": [
                {
                    "name": "Kofte",
                    "quantity": 2,
                    "price": 9,
                    "selectedOptions": [{"name": "spicy", "price": 0.5}],
                }
            ],
            "checkedItems": {"0": True, "x": True},
            "courier": {"id": "c1", "name": "Mert"},
            "statusHistory": {"pending": "2024-05-04T10:00:00Z", "broken": "soon"},
        },
    )

    assert order.order_number == "ABCDEF"
    assert order.status is OrderStatus.PENDING
    assert order.fulfillment is FulfillmentType.DINE_IN
    assert (order.business_id, order.business_name) == ("b7", "Kasap Veli")
    assert (order.customer_id, order.customer_name) == ("u3", "Emre")
    assert order.total == 42.5
    assert order.items[0].name == "Kofte"
    assert order.items[0].options[0].price_delta == 0.5
    assert order.checked_items == {0: True}
    assert order.courier_id == "c1"
    assert order.has_courier
    assert set(order.status_history) == {"pending"}


def test_unknown_status_is_kept_verbatim():
    order = Order.from_document("o1", {"status": "archived"})
    assert order.status == "archived"


def test_as_datetime():
    expected = datetime(2024, 5, 4, 10, tzinfo=timezone.utc)
    assert as_datetime("2024-05-04T10:00:00Z") == expected
    assert as_datetime(expected.timestamp()) == expected
    assert as_datetime(datetime(2024, 5, 4, 10)) == expected
    assert as_datetime("") is None
    assert as_datetime("not a date") is None


def test_table_number_labels_are_kept():
    assert Order.from_document("o1", {"tableNumber": "4"}).table_number == 4
    assert Order.from_document("o1", {"tableNumber": "T3"}).table_number == "T3"
    assert Order.from_document("o1", {"tableNumber": ""}).table_number is None
    assert Order.from_document("o1", {}).table_number is None
