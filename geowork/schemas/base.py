from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..services.time_rules import ensure_utc


# Every persisted timestamp is normalised to aware UTC on the way in.
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class Document(BaseModel):
    """Base for records kept in the document store (camelCase field names on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
