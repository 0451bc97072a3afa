# app/models/inquiry.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, Union


class VisaQuestion(BaseModel):
    from_country: Optional[str] = None
    to_country: Optional[str] = None
    nationality: Optional[str] = None
    purpose: Optional[str] = None
    duration: Optional[Union[str, int]] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "fromCountry": "Germany",
                "toCountry": "Uzbekistan",
                "nationality": "German",
                "purpose": "tourism",
                "duration": "14 days"
            }
        }
    )
