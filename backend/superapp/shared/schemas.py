"""
Shared request/response helpers for the API layer.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    """
    Base for request bodies.

    The frontend sends camelCase (publicToken, transactionIds); snake_case
    field names are accepted too.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def ok(**payload: Any) -> Dict[str, Any]:
    """Success envelope: {"success": true, ...payload}."""
    return {"success": True, **payload}
