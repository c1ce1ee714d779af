"""Repository for the Customer aggregate."""

from protean.exceptions import ObjectNotFoundError

from marketplace.customer.customer import Customer
from marketplace.domain import marketplace


@marketplace.repository(part_of=Customer)
class CustomerRepository:
    def find(self, customer_id) -> Customer | None:
        if not customer_id:
            return None
        try:
            return self.get(customer_id)
        except ObjectNotFoundError:
            return None

    def find_by_email(self, email) -> Customer | None:
        """Look up an account by e-mail, ignoring case and surrounding spaces."""
        if not email:
            return None
        customers = self._dao.query.filter(email=email.strip().lower()).all().items
        return customers[0] if customers else None
