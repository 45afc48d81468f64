"""DentalHub access core.

Multi-tenant access control, subscription gating and audit trail for the
DentalHub clinic EHR.
"""

__version__ = "0.1.0"
