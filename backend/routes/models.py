"""Pydantic request models for API endpoints."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ChooseBody(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    choice_id: str
