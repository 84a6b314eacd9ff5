"""
API routes for the TradeGate engine.
"""

from tradegate_engine.api.order_routes import router as order_router

__all__ = ["order_router"]
