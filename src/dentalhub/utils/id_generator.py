"""ID generation utilities for DentalHub."""

import uuid
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix for the ID, e.g. ``clinic`` or ``sub``

    Returns:
        Generated unique ID
    """
    base_id = uuid.uuid4().hex

    if prefix:
        return f"{prefix}_{base_id}"

    return base_id
