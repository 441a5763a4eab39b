"""
Public booking-form configuration: rooms, rates and bank details.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from guesthouse.core.config import BankAccount


class RoomInfo(BaseModel):
    number: int
    name: str


class SiteConfigResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    rooms: list[RoomInfo]
    nightly_rate_mvr: int
    extra_bed_rate_mvr: int
    usd_exchange_rate: float
    bank_accounts: list[BankAccount]
