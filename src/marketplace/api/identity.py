"""Who is calling: resolves the ``X-Customer-Id`` header to a known customer.

No header means an anonymous (guest) shopper. A header naming a customer
that does not exist is rejected with 401 rather than silently downgraded.
"""

from fastapi import Header, HTTPException
from protean.utils.globals import current_domain

from marketplace.customer.customer import Customer
from marketplace.utils.logging import bind_request_context


async def current_customer_id(x_customer_id: str | None = Header(default=None)) -> str | None:
    if not x_customer_id:
        return None

    customer = current_domain.repository_for(Customer).find(x_customer_id)
    if customer is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    bind_request_context(customer_id=str(customer.id))
    return str(customer.id)


async def require_customer_id(x_customer_id: str | None = Header(default=None)) -> str:
    customer_id = await current_customer_id(x_customer_id)
    if customer_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return customer_id
