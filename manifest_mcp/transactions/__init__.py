"""Transaction handlers, one router per module."""

from .bank import route_bank_transaction
from .billing import route_billing_transaction
from .distribution import route_distribution_transaction
from .gov import route_gov_transaction
from .group import route_group_transaction
from .manifest import route_manifest_transaction
from .sku import route_sku_transaction
from .staking import route_staking_transaction

__all__ = [
    "route_bank_transaction",
    "route_billing_transaction",
    "route_distribution_transaction",
    "route_gov_transaction",
    "route_group_transaction",
    "route_manifest_transaction",
    "route_sku_transaction",
    "route_staking_transaction",
]
