# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Entity ids are UUIDs in the store; anything else cannot match a row."""
import uuid
from typing import Any, Optional


def parse_id(value: Any) -> Optional[str]:
    """Canonical string form of a UUID, or None when ``value`` is not one."""
    if value is None:
        return None
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        return None
