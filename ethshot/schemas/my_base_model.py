from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CustomBaseModel(BaseModel):
    """Custom base model for all schemas.
    - snake_case attributes, camelCase on the wire (walletAddress, jwtToken, ...)
    - accepts either spelling on input
    - helper to build a model from an RPC row dict
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]):
        if not isinstance(record, dict):
            raise ValueError(f"Invalid record type: {type(record)}")
        return cls(**record)
