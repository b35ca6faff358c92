"""
Pydantic schemas for login.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LoginIn(BaseModel):
    employee_id: Optional[Union[str, int]] = Field(default=None, alias="employeeId")
    password: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class UserOut(BaseModel):
    id: str
    employee_id: str
    display_name: str
    role: str

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)
