from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def envelope(data: Any = None, message: Optional[str] = None) -> dict:
    """Wrap a payload in the `{success, data, message}` response shape."""
    body: dict = {"success": True}
    if data is not None:
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json", by_alias=True)
        elif isinstance(data, list):
            data = [
                item.model_dump(mode="json", by_alias=True) if isinstance(item, BaseModel) else item
                for item in data
            ]
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body
