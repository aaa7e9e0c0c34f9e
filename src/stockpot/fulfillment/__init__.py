"""Recipe fulfillment and order intake."""

from stockpot.fulfillment.engine import FulfillmentEngine
from stockpot.fulfillment.orders import OrderIntake

__all__ = ["FulfillmentEngine", "OrderIntake"]
