"""Customer registration — command and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from marketplace.customer.customer import Customer
from marketplace.domain import marketplace


@marketplace.command(part_of="Customer")
class RegisterCustomer:
    email: String(required=True, max_length=254)
    first_name: String(max_length=100)
    last_name: String(max_length=100)


@marketplace.command_handler(part_of=Customer)
class RegisterCustomerHandler:
    @handle(RegisterCustomer)
    def register_customer(self, command):
        repo = current_domain.repository_for(Customer)
        if repo.find_by_email(command.email) is not None:
            raise ValidationError({"email": ["An account with this email already exists"]})

        customer = Customer.register(
            email=command.email,
            first_name=command.first_name,
            last_name=command.last_name,
        )
        repo.add(customer)
        return str(customer.id)
