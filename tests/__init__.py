"""
Tests package for the smart execution core

This package contains all test files organized by component.
"""

# Test organization:
# - test_price_feed.py: Tests for the in-memory price feed
# - test_order_schemas.py: Tests for order, trade and signal records
# - test_position_sizer.py: Tests for Kelly / VAR / risk-parity sizing
# - test_trade_ledger.py: Tests for the order/trade ledger
# - test_execution_simulator.py: Tests for the fill model
# - test_execution_router.py: Tests for slice planning and the smart order router
# - test_execution_engine.py: Tests for the engine facade and configuration
