from orderdesk.domain.updates import DELETE, Increment, Set, apply_updates


def test_dotted_path_keeps_sibling_keys():
    doc = {"statusHistory": {"pending": "t0", "accepted": "t1"}}
    out = apply_updates(doc, {"statusHistory.ready": "t2"})
    assert out["statusHistory"] == {"pending": "t0", "accepted": "t1", "ready": "t2"}
    # the input is not mutated
    assert "ready" not in doc["statusHistory"]


def test_delete_removes_field_instead_of_nulling():
    doc = {"status": "onTheWay", "courierId": "c1", "courierName": "Mert"}
    out = apply_updates(doc, {"courierId": DELETE, "courierName": DELETE})
    assert "courierId" not in out
    assert "courierName" not in out
    assert out["status"] == "onTheWay"


def test_delete_of_missing_path_is_a_no_op():
    out = apply_updates({"a": 1}, {"b.c": DELETE})
    assert out == {"a": 1}


def test_increment_starts_from_zero_and_accumulates():
    out = apply_updates({}, {"fulfillmentIssues": Increment(2)})
    out = apply_updates(out, {"fulfillmentIssues": Increment(3)})
    assert out["fulfillmentIssues"] == 5


def test_set_and_plain_values_create_intermediate_maps():
    out = apply_updates({}, {"checkedItems.0": True, "checkedItems.2": Set(False)})
    assert out == {"checkedItems": {"0": True, "2": False}}
