from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Wire models use camelCase field names (groupName, parentId, ...)
    but accept snake_case input as well.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
