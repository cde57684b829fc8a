from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# "HH:MM", 24h clock
TIME_PATTERN = r"^([01][0-9]|2[0-3]):[0-5][0-9]$"


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str
