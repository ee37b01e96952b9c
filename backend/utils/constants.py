"""
Constants used throughout the application.
"""

# Order Status Colors
# Using Tailwind CSS color palette for consistency
ORDER_STATUS_COLORS = {
    'pending': '#EF4444',      # Red-500 - Waiting for stock
    'processing': '#3B82F6',   # Blue-500 - Stock being issued
    'ready': '#8B5CF6',        # Purple-500 - Ready for pickup/delivery
    'delivered': '#10B981',    # Green-500 - Complete
    'installed': '#059669',    # Emerald-600 - Complete, fitted on site
    'cancelled': '#6B7280',    # Gray-500 - Cancelled
}

# Issuance Status Colors
ISSUANCE_STATUS_COLORS = {
    'issued': '#3B82F6',
    'returned': '#10B981',
    'damaged': '#EF4444',
}

# Stock level labels returned by the stock endpoints
STOCK_STATUS_OUT = 'OUT_OF_STOCK'
STOCK_STATUS_LOW = 'LOW_STOCK'
STOCK_STATUS_IN = 'IN_STOCK'

# Daily number prefixes (PREFIX-YYYYMMDD-NNNN)
INVOICE_NUMBER_PREFIX = 'INV'
ISSUANCE_NUMBER_PREFIX = 'ISS'
DAILY_SEQUENCE_WIDTH = 4

# Channels group that receives stock/issuance/order events
STOCK_EVENTS_GROUP = 'stock'
