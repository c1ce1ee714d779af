"""Post-placement order changes — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@marketplace.command(part_of="Order")
class RecordPaymentStatus:
    order_id = Identifier(required=True)
    payment_status = String(required=True, max_length=20)


@marketplace.command(part_of="Order")
class SetTrackingNumber:
    order_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=100)


@marketplace.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        order.transition_to(command.status)
        repo.add(order)

    @handle(RecordPaymentStatus)
    def record_payment_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        order.record_payment_status(command.payment_status)
        repo.add(order)

    @handle(SetTrackingNumber)
    def set_tracking_number(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        order.set_tracking_number(command.tracking_number)
        repo.add(order)
