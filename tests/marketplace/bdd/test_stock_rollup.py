"""BDD tests for rolling variant stock up to the product."""

from protean import current_domain
from pytest_bdd import parsers, scenarios, when

from marketplace.product.variants import UpdateVariant

scenarios("features/stock_rollup.feature")


@when(parsers.cfparse('variant "{sku}" is set to {quantity:d} units'))
def set_variant_quantity(catalogue, sku, quantity):
    current_domain.process(
        UpdateVariant(product_id=catalogue["T-Shirt"], variant_id=catalogue[sku], quantity=quantity),
        asynchronous=False,
    )
