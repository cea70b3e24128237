from pdf_png_service.conversion import CompletionAggregator, OrderItemRecord, all_approved_extracted

from conftest import APPROVED, FakeOrderStore


def _item(item_id, status=APPROVED, extracted=False, order="X"):
    return OrderItemRecord(order_item_id=item_id, order=order, order_item_status=status, png_extracted=extracted)


def test_incomplete_until_every_approved_item_extracted():
    items = [_item("1", extracted=True), _item("2", extracted=False)]
    assert all_approved_extracted(items, APPROVED) is False

    items[1] = _item("2", extracted=True)
    assert all_approved_extracted(items, APPROVED) is True


def test_empty_and_unapproved_sets_are_not_complete():
    assert all_approved_extracted([], APPROVED) is False
    assert all_approved_extracted([_item("1", status="draft", extracted=True)], APPROVED) is False


def test_unapproved_items_are_ignored():
    items = [_item("1", extracted=True), _item("2", status="cancelled", extracted=False)]
    assert all_approved_extracted(items, APPROVED) is True


def test_aggregator_reads_store_fresh_each_time():
    store = FakeOrderStore({
        "1": {"order": "X", "orderItemStatus": APPROVED, "pngExtracted": True},
        "2": {"order": "X", "orderItemStatus": APPROVED, "pngExtracted": False},
        "3": {"order": "Y", "orderItemStatus": APPROVED, "pngExtracted": False},
    })
    aggregator = CompletionAggregator(store, approved_status=APPROVED)

    assert aggregator.is_order_complete("X") is False
    aggregator.mark_extracted("2")
    assert store.items["2"]["pngExtracted"] is True
    assert aggregator.is_order_complete("X") is True
    assert aggregator.is_order_complete("missing") is False


def test_should_notify_without_guard_always_true():
    aggregator = CompletionAggregator(FakeOrderStore(), approved_status=APPROVED)
    assert aggregator.should_notify("X") is True
    assert aggregator.should_notify("X") is True


def test_should_notify_with_guard_only_first_claim_wins():
    aggregator = CompletionAggregator(FakeOrderStore(), approved_status=APPROVED, notify_once=True)
    assert aggregator.should_notify("X") is True
    assert aggregator.should_notify("X") is False
    assert aggregator.should_notify("Y") is True
