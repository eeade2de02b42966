from typing import Any

from pydantic import BaseModel, Field


class SlotHost(BaseModel):
    id: str
    name: str


class UnionSlot(BaseModel):
    start_time: str
    end_time: str
    hosts: list[SlotHost] = Field(default_factory=list)


class SlotsMeta(BaseModel):
    start: str
    end: str
    timezone: str


class SchedulingSlotsResponse(BaseModel):
    slots: list[UnionSlot]
    meta: SlotsMeta


class Invitee(BaseModel):
    name: str | None = None
    email: str | None = None


class BookingRequest(BaseModel):
    start_time: str | None = None
    end_time: str | None = None
    invitee: Invitee | None = None


class BookingResponse(BaseModel):
    booking: dict[str, Any] | None = None
    redirect: str | None = None
    host_assigned: str
