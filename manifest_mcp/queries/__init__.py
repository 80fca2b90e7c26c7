"""Query handlers, one router per module."""

from .auth import route_auth_query
from .bank import route_bank_query
from .billing import route_billing_query
from .distribution import route_distribution_query
from .gov import route_gov_query
from .group import route_group_query
from .sku import route_sku_query
from .staking import route_staking_query

__all__ = [
    "route_auth_query",
    "route_bank_query",
    "route_billing_query",
    "route_distribution_query",
    "route_gov_query",
    "route_group_query",
    "route_sku_query",
    "route_staking_query",
]
