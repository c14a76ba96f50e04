"""
fieldtrack: job lifecycle and field tracking engine for dispatched
field-service work.
"""

__version__ = "0.1.0"
