"""Commerce bounded context — order fulfillment and the mileage ledger.

Orders move through a validated lifecycle; every transition that touches a
customer's point balance posts an idempotent ledger entry, and pending
orders are grouped into shipment batches for manual or automatic dispatch.
"""

from protean.domain import Domain

from commerce.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

commerce = Domain(name="commerce")
