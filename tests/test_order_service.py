from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from storehouse.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from storehouse.models import Order, OrderAssignment, OrderStatus, OrderStatusHistory, Product
from storehouse.schemas.order import OrderItemCreate
from storehouse.services.order_service import OrderService

from conftest import FailingPublisher


def _status_history(db, order_id):
    return (
        db.query(OrderStatusHistory)
        .filter(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.id)
        .all()
    )


def _ready_for_delivery(order_service, order_payload, caller):
    order = order_service.create_order(order_payload(), caller)
    order_service.update_order_status(order.id, OrderStatus.READY_FOR_DELIVERY, caller)
    return order.id


class TestCreateOrder:

    def test_snapshots_prices_and_totals(self, order_service, order_payload, storehouse_manager, seed):
        order = order_service.create_order(
            order_payload((seed.drill_id, 2), (seed.cheese_id, 4)),
            storehouse_manager,
        )

        assert order.status == OrderStatus.CREATED
        assert order.user_id == "sm-1"
        assert order.company_id == 1
        assert [(i.product_id, i.quantity, i.unit_price) for i in order.items] == [
            (seed.drill_id, 2, 120.0),
            (seed.cheese_id, 4, 8.25),
        ]
        assert order.total_price == pytest.approx(sum(i.quantity * i.unit_price for i in order.items))
        assert order.total_price == pytest.approx(273.0)

    def test_records_initial_history_entry(self, db, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)

        history = _status_history(db, order.id)
        assert len(history) == 1
        assert history[0].status == OrderStatus.CREATED.value
        assert history[0].description == "Order Created"
        assert history[0].updated_by_user_id == "sm-1"

    def test_decrements_stock(self, db, order_service, order_payload, storehouse_manager, seed):
        order_service.create_order(order_payload((seed.drill_id, 3)), storehouse_manager)

        assert db.get(Product, seed.drill_id).stock == 7

    def test_unit_price_is_not_affected_by_later_catalog_change(
        self, db, order_service, order_payload, storehouse_manager, seed
    ):
        order = order_service.create_order(order_payload((seed.drill_id, 1)), storehouse_manager)

        drill = db.get(Product, seed.drill_id)
        drill.price = 999.0
        db.commit()

        reloaded = order_service.get_order(order.id)
        assert reloaded.items[0].unit_price == 120.0
        assert reloaded.total_price == pytest.approx(120.0)

    def test_explicit_user_id_is_used_as_creator(self, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(user_id="cm-1"), storehouse_manager)

        assert order.user_id == "cm-1"

    def test_publishes_order_created(self, order_service, order_payload, storehouse_manager, publisher):
        order = order_service.create_order(order_payload(), storehouse_manager)

        events = publisher.of_type("OrderCreated")
        assert len(events) == 1
        assert events[0]["order_id"] == order.id
        assert events[0]["total_price"] == pytest.approx(order.total_price)

    def test_empty_items_rejected(self, db, order_service, order_payload, storehouse_manager):
        payload = order_payload()
        payload.order_items = []

        with pytest.raises(ValidationError, match="at least one item"):
            order_service.create_order(payload, storehouse_manager)
        assert db.query(Order).count() == 0

    def test_quantity_above_stock_rejected_and_nothing_persisted(
        self, db, order_service, order_payload, storehouse_manager, seed
    ):
        with pytest.raises(ValidationError, match="Insufficient stock"):
            order_service.create_order(
                order_payload((seed.drill_id, 1), (seed.hammer_id, 4)),
                storehouse_manager,
            )

        assert db.query(Order).count() == 0
        assert db.get(Product, seed.drill_id).stock == 10
        assert db.get(Product, seed.hammer_id).stock == 3

    def test_repeated_product_lines_are_summed_for_stock(
        self, db, order_service, order_payload, storehouse_manager, seed
    ):
        with pytest.raises(ValidationError, match="Insufficient stock"):
            order_service.create_order(
                order_payload((seed.hammer_id, 2), (seed.hammer_id, 2)),
                storehouse_manager,
            )
        assert db.query(Order).count() == 0

    def test_exact_stock_is_enough(self, db, order_service, order_payload, storehouse_manager, seed):
        order_service.create_order(order_payload((seed.hammer_id, 3)), storehouse_manager)

        assert db.get(Product, seed.hammer_id).stock == 0

    def test_unknown_product_rejected(self, order_service, order_payload, storehouse_manager):
        with pytest.raises(ValidationError, match="not found"):
            order_service.create_order(order_payload((404, 1)), storehouse_manager)

    def test_product_of_another_company_rejected(self, db, order_service, order_payload, storehouse_manager, seed):
        with pytest.raises(ValidationError, match=f"Product with ID {seed.crate_id} not found"):
            order_service.create_order(order_payload((seed.crate_id, 1)), storehouse_manager)

        assert db.query(Order).count() == 0
        assert db.get(Product, seed.crate_id).stock == 100

    def test_non_positive_quantity_rejected(self, order_service, order_payload, storehouse_manager, seed):
        payload = order_payload()
        payload.order_items = [OrderItemCreate.model_construct(product_id=seed.drill_id, quantity=0)]

        with pytest.raises(ValidationError, match="at least 1"):
            order_service.create_order(payload, storehouse_manager)

    def test_unknown_user_rejected(self, db, order_service, order_payload, storehouse_manager):
        with pytest.raises(NotFoundError):
            order_service.create_order(order_payload(user_id="ghost"), storehouse_manager)
        assert db.query(Order).count() == 0

    def test_shipping_street_required(self, order_service, order_payload, storehouse_manager):
        with pytest.raises(ValidationError, match="street"):
            order_service.create_order(order_payload(shipping_address_street="  "), storehouse_manager)

    def test_notification_failure_does_not_fail_creation(self, db, order_payload, storehouse_manager):
        service = OrderService(db, FailingPublisher())

        order = service.create_order(order_payload(), storehouse_manager)

        assert db.get(Order, order.id) is not None


class TestUpdateOrderStatus:

    def test_status_and_history_move_together(self, db, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)

        updated = order_service.update_order_status(
            order.id, OrderStatus.READY_FOR_DELIVERY, storehouse_manager
        )

        assert updated.status == OrderStatus.READY_FOR_DELIVERY
        history = _status_history(db, order.id)
        assert [h.status for h in history] == ["Created", "ReadyForDelivery"]
        assert history[-1].status == db.get(Order, order.id).status
        assert history[-1].timestamp >= history[-2].timestamp
        assert history[-1].updated_by_user_id == "sm-1"
        assert history[-1].description == "Status updated to ReadyForDelivery"

    def test_custom_description_is_stored(self, db, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)

        order_service.update_order_status(
            order.id, OrderStatus.BILLED, storehouse_manager, description="Invoice #77 sent"
        )

        assert _status_history(db, order.id)[-1].description == "Invoice #77 sent"

    def test_worker_moves_ready_order_into_transit(
        self, order_service, order_payload, storehouse_manager, worker
    ):
        order_id = _ready_for_delivery(order_service, order_payload, storehouse_manager)

        updated = order_service.update_order_status(order_id, OrderStatus.IN_TRANSIT, worker)

        assert updated.status == OrderStatus.IN_TRANSIT

    def test_worker_cannot_bill_ready_order(
        self, db, order_service, order_payload, storehouse_manager, worker
    ):
        order_id = _ready_for_delivery(order_service, order_payload, storehouse_manager)

        with pytest.raises(ForbiddenError):
            order_service.update_order_status(order_id, OrderStatus.BILLED, worker)

        assert db.get(Order, order_id).status == "ReadyForDelivery"
        assert len(_status_history(db, order_id)) == 2

    def test_company_manager_cancels_created_order(
        self, order_service, order_payload, storehouse_manager, company_manager
    ):
        order = order_service.create_order(order_payload(), storehouse_manager)

        updated = order_service.update_order_status(order.id, OrderStatus.CANCELED, company_manager)

        assert updated.status == OrderStatus.CANCELED

    def test_company_manager_cannot_cancel_billed_order(
        self, order_service, order_payload, storehouse_manager, company_manager
    ):
        order = order_service.create_order(order_payload(), storehouse_manager)
        order_service.update_order_status(order.id, OrderStatus.BILLED, storehouse_manager)

        with pytest.raises(ForbiddenError):
            order_service.update_order_status(order.id, OrderStatus.CANCELED, company_manager)

    def test_full_delivery_path(self, db, order_service, order_payload, storehouse_manager, worker):
        order_id = _ready_for_delivery(order_service, order_payload, storehouse_manager)
        order_service.update_order_status(order_id, OrderStatus.IN_TRANSIT, worker)
        order_service.update_order_status(order_id, OrderStatus.RETURNED, worker)

        history = _status_history(db, order_id)
        assert [h.status for h in history] == ["Created", "ReadyForDelivery", "InTransit", "Returned"]
        timestamps = [h.timestamp for h in history]
        assert timestamps == sorted(timestamps)

        with pytest.raises(ForbiddenError):
            order_service.update_order_status(order_id, OrderStatus.COMPLETED, worker)

    def test_same_status_is_denied(self, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)

        with pytest.raises(ForbiddenError):
            order_service.update_order_status(order.id, OrderStatus.CREATED, storehouse_manager)

    def test_missing_order(self, order_service, storehouse_manager, seed):
        with pytest.raises(NotFoundError):
            order_service.update_order_status(999, OrderStatus.BILLED, storehouse_manager)

    def test_stale_version_is_rejected(self, db, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)
        stale_version = order.version
        order_service.update_order_status(order.id, OrderStatus.BILLED, storehouse_manager)

        with pytest.raises(ConflictError):
            order_service.update_order_status(
                order.id,
                OrderStatus.READY_FOR_DELIVERY,
                storehouse_manager,
                expected_version=stale_version,
            )
        assert db.get(Order, order.id).status == "Billed"

    def test_concurrent_update_from_another_session_conflicts(
        self, db, engine, order_service, order_payload, storehouse_manager, publisher
    ):
        order = order_service.create_order(order_payload(), storehouse_manager)
        loaded = db.get(Order, order.id)
        assert loaded.version == 1

        other = sessionmaker(bind=engine)()
        try:
            OrderService(other, publisher).update_order_status(order.id, OrderStatus.BILLED, storehouse_manager)
        finally:
            other.close()

        with pytest.raises(ConflictError, match="modified by another user"):
            order_service.update_order_status(order.id, OrderStatus.READY_FOR_DELIVERY, storehouse_manager)

        db.expire_all()
        assert db.get(Order, order.id).status == "Billed"
        assert [h.status for h in _status_history(db, order.id)] == ["Created", "Billed"]

    def test_matching_version_is_accepted(self, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)

        updated = order_service.update_order_status(
            order.id, OrderStatus.BILLED, storehouse_manager, expected_version=order.version
        )

        assert updated.version == order.version + 1

    def test_publishes_status_change_to_assigned_workers(
        self, order_service, order_payload, storehouse_manager, publisher
    ):
        order = order_service.create_order(order_payload(), storehouse_manager)
        order_service.assign_workers(order.id, ["w-1", "w-2"])

        order_service.update_order_status(order.id, OrderStatus.READY_FOR_DELIVERY, storehouse_manager)

        event = publisher.of_type("OrderStatusChanged")[-1]
        assert event["old_status"] == "Created"
        assert event["new_status"] == "ReadyForDelivery"
        assert event["updated_by_user_name"] == "sami"
        assert event["description"] == "Status updated to ReadyForDelivery"
        assert sorted(event["recipients"]) == ["w-1", "w-2"]

    def test_notification_failure_keeps_new_status(self, db, order_payload, storehouse_manager):
        service = OrderService(db, FailingPublisher())
        order = service.create_order(order_payload(), storehouse_manager)

        service.update_order_status(order.id, OrderStatus.BILLED, storehouse_manager)

        assert db.get(Order, order.id).status == "Billed"

    def test_history_stays_monotonic_when_clock_steps_back(
        self, db, order_service, order_payload, storehouse_manager
    ):
        order = order_service.create_order(order_payload(), storehouse_manager)
        entry = _status_history(db, order.id)[0]
        entry.timestamp = entry.timestamp + timedelta(hours=1)
        db.commit()

        order_service.update_order_status(order.id, OrderStatus.BILLED, storehouse_manager)

        history = _status_history(db, order.id)
        assert history[1].timestamp >= history[0].timestamp


class TestAssignWorkers:

    def test_assigns_workers(self, db, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)

        updated = order_service.assign_workers(order.id, ["w-1", "w-2"])

        assert sorted(a.worker_id for a in updated.assignments) == ["w-1", "w-2"]

    def test_full_replacement(self, db, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)
        order_service.assign_workers(order.id, ["w-1", "w-2"])

        updated = order_service.assign_workers(order.id, ["w-2"])

        assert [a.worker_id for a in updated.assignments] == ["w-2"]

    def test_empty_list_unassigns_everyone(self, db, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)
        order_service.assign_workers(order.id, ["w-1", "w-2"])

        updated = order_service.assign_workers(order.id, [])

        assert updated.assignments == []
        assert db.query(OrderAssignment).filter(OrderAssignment.order_id == order.id).count() == 0

    def test_duplicates_collapse(self, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)

        updated = order_service.assign_workers(order.id, ["w-1", "w-1"])

        assert [a.worker_id for a in updated.assignments] == ["w-1"]

    def test_only_newly_added_workers_are_notified(
        self, order_service, order_payload, storehouse_manager, publisher
    ):
        order = order_service.create_order(order_payload(), storehouse_manager)
        order_service.assign_workers(order.id, ["w-1"])
        order_service.assign_workers(order.id, ["w-1", "w-2"])
        order_service.assign_workers(order.id, [])

        events = publisher.of_type("WorkersAssigned")
        assert [e["worker_ids"] for e in events] == [["w-1"], ["w-2"]]

    def test_unknown_worker_rejected(self, db, order_service, order_payload, storehouse_manager):
        order = order_service.create_order(order_payload(), storehouse_manager)
        order_service.assign_workers(order.id, ["w-1"])

        with pytest.raises(ValidationError, match="ghost"):
            order_service.assign_workers(order.id, ["w-2", "ghost"])

        remaining = db.query(OrderAssignment).filter(OrderAssignment.order_id == order.id).all()
        assert [a.worker_id for a in remaining] == ["w-1"]

    def test_failed_flush_rolls_back_and_keeps_assignments(
        self, db, order_service, order_payload, storehouse_manager, monkeypatch
    ):
        order = order_service.create_order(order_payload(), storehouse_manager)
        order_service.assign_workers(order.id, ["w-1"])
        rollbacks = []
        real_rollback = db.rollback

        def failing_flush(*args, **kwargs):
            raise OperationalError("DELETE FROM order_assignments", {}, Exception("database is locked"))

        def recording_rollback():
            rollbacks.append(True)
            real_rollback()

        monkeypatch.setattr(db, "flush", failing_flush)
        monkeypatch.setattr(db, "rollback", recording_rollback)

        with pytest.raises(OperationalError):
            order_service.assign_workers(order.id, ["w-2"])

        monkeypatch.undo()
        assert rollbacks == [True]
        remaining = db.query(OrderAssignment).filter(OrderAssignment.order_id == order.id).all()
        assert [a.worker_id for a in remaining] == ["w-1"]

    def test_missing_order(self, order_service, seed):
        with pytest.raises(NotFoundError):
            order_service.assign_workers(999, ["w-1"])

    def test_assigned_orders_for_worker(self, order_service, order_payload, storehouse_manager):
        first = order_service.create_order(order_payload(), storehouse_manager)
        second = order_service.create_order(order_payload(), storehouse_manager)
        order_service.assign_workers(first.id, ["w-1"])
        order_service.assign_workers(second.id, ["w-2"])

        assigned = order_service.get_orders_assigned_to_worker("w-1")

        assert [o.id for o in assigned] == [first.id]


class TestReadOperations:

    def test_get_missing_order(self, order_service, seed):
        with pytest.raises(NotFoundError):
            order_service.get_order(12345)

    def test_list_is_scoped_to_company(
        self, order_service, order_payload, storehouse_manager, company_manager
    ):
        from storehouse.models import Role
        from storehouse.security import CallerContext

        order_service.create_order(order_payload(), storehouse_manager)
        order_service.create_order(order_payload(), storehouse_manager)
        outsider = CallerContext(user_id="cm-1", role=Role.COMPANY_MANAGER, company_id=2)

        assert order_service.list_orders(company_manager).total == 2
        assert order_service.list_orders(outsider).total == 0

    def test_list_filters_by_status(self, order_service, order_payload, storehouse_manager):
        first = order_service.create_order(order_payload(), storehouse_manager)
        order_service.create_order(order_payload(), storehouse_manager)
        order_service.update_order_status(first.id, OrderStatus.BILLED, storehouse_manager)

        listed = order_service.list_orders(storehouse_manager, status=OrderStatus.BILLED)

        assert [o.id for o in listed.orders] == [first.id]
        assert listed.total == 1

    def test_allowed_statuses_follow_role(
        self, order_service, order_payload, storehouse_manager, company_manager, worker
    ):
        order = order_service.create_order(order_payload(), storehouse_manager)

        assert order_service.get_allowed_statuses(order.id, storehouse_manager).allowed_statuses == [
            OrderStatus.BILLED,
            OrderStatus.READY_FOR_DELIVERY,
        ]
        assert order_service.get_allowed_statuses(order.id, company_manager).allowed_statuses == [
            OrderStatus.CANCELED,
        ]
        assert order_service.get_allowed_statuses(order.id, worker).allowed_statuses == []


class TestNotificationDispatch:

    def test_events_wait_for_the_dispatcher(self, db, order_payload, storehouse_manager, publisher):
        deferred = []
        service = OrderService(db, publisher, dispatch=lambda func, *args: deferred.append((func, args)))

        order = service.create_order(order_payload(), storehouse_manager)
        service.update_order_status(order.id, OrderStatus.BILLED, storehouse_manager)

        assert publisher.events == []
        assert db.get(Order, order.id).status == "Billed"

        for func, args in deferred:
            func(*args)

        assert [kind for kind, _ in publisher.events] == ["OrderCreated", "OrderStatusChanged"]
        assert publisher.of_type("OrderCreated")[0]["order_id"] == order.id

    def test_deferred_failure_is_swallowed(self, db, order_payload, storehouse_manager):
        deferred = []
        service = OrderService(db, FailingPublisher(), dispatch=lambda func, *args: deferred.append((func, args)))

        order = service.create_order(order_payload(), storehouse_manager)

        for func, args in deferred:
            func(*args)
        assert db.get(Order, order.id) is not None
