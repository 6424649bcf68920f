"""Response helpers shared by the API modules."""
from datetime import datetime
from typing import Any

from pydantic.alias_generators import to_camel


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def camelize(obj: Any) -> Any:
    """Recursively convert snake_case dict keys to camelCase for API responses."""
    if isinstance(obj, dict):
        return {to_camel(k): camelize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [camelize(x) for x in obj]
    return obj
