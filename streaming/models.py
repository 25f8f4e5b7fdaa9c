# streaming/models.py
import json
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from streaming.exceptions import ProtocolError
from utils.content_types import classify, get_content_type, is_image

class StreamMode(str, Enum):
    DAY = "day"
    VISUAL_SEARCH = "visual_search"

class DayRequest(BaseModel):
    """A UTC calendar day as the closed instant range [start, end]."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @classmethod
    def for_date(cls, day: date) -> "DayRequest":
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        end = start + timedelta(days=1) - timedelta(milliseconds=1)
        return cls(start=start, end=end)

    @property
    def day(self) -> date:
        return self.start.date()

    @property
    def start_timestamp(self) -> int:
        return int(self.start.timestamp())

    @property
    def end_timestamp(self) -> int:
        # Whole seconds, so the last block of the day may carry ts == end_timestamp
        return int(self.end.timestamp())

    @property
    def label(self) -> str:
        return self.start.strftime("%a %b %d %Y")

    def previous(self) -> Optional["DayRequest"]:
        """The day before, or None when this is the first representable day."""
        if self.day == date.min:
            return None
        return DayRequest.for_date(self.day - timedelta(days=1))

class Transaction(BaseModel):
    id: str
    data_size: int = 0
    tags: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_edge(cls, edge: Dict[str, Any]) -> "Transaction":
        """Build a transaction from a GraphQL edge; later duplicate tags win."""
        node = edge["node"]
        tags: Dict[str, str] = {}
        for tag in node.get("tags") or []:
            tags[tag["name"]] = tag["value"]
        data = node.get("data") or {}
        return cls(id=node["id"], data_size=int(data.get("size") or 0), tags=tags)

    @property
    def content_type(self) -> str:
        return get_content_type(self.tags)

    @property
    def is_image(self) -> bool:
        return is_image(self.tags)

    def to_payload(self) -> Dict[str, Any]:
        style = classify(self.tags)
        return {
            "id": self.id,
            "data_size": self.data_size,
            "tags": self.tags,
            "contentCategory": style.category,
            "color": style.color,
        }

# Server -> client messages

class LoadingStatusMessage(BaseModel):
    type: Literal["loadingStatus"] = "loadingStatus"
    message: str

class BlockPayload(BaseModel):
    """Block metadata from the gateway plus the block's classified transactions."""

    model_config = ConfigDict(extra="allow")

    height: int
    transactions: List[Dict[str, Any]]
    isVisual: bool

    @classmethod
    def build(cls, block: Dict[str, Any], height: int, transactions: List[Transaction], is_visual: bool) -> "BlockPayload":
        return cls.model_validate({
            **block,
            "height": height,
            "transactions": [tx.to_payload() for tx in transactions],
            "isVisual": is_visual,
        })

class NewBlockMessage(BaseModel):
    type: Literal["newBlock"] = "newBlock"
    data: BlockPayload

class DayStreamCompleteMessage(BaseModel):
    type: Literal["dayStreamComplete"] = "dayStreamComplete"

class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str

ServerMessage = Union[LoadingStatusMessage, NewBlockMessage, DayStreamCompleteMessage, ErrorMessage]

# Client -> server messages

def parse_iso_day(value: str) -> date:
    """Parse an ISO-8601 date or date-time into its UTC calendar day."""
    text = value.strip()
    if not text:
        raise ValueError("date must not be empty")
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc)
            day = parsed.date()
    except ValueError:
        raise ValueError(f"'{value}' is not an ISO-8601 date")
    except OverflowError:
        raise ValueError(f"'{value}' is out of range")
    # The day's end instant must still be representable
    if day == date.max:
        raise ValueError(f"'{value}' is out of range")
    return day

class ClientRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["get_day", "get_day_visual"]
    day: date = Field(alias="date")

    @field_validator("day", mode="before")
    @classmethod
    def _parse_day(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_iso_day(value)
        if isinstance(value, date) and not isinstance(value, datetime):
            if value == date.max:
                raise ValueError(f"'{value}' is out of range")
            return value
        raise ValueError("date must be an ISO-8601 string")

    @property
    def mode(self) -> StreamMode:
        return StreamMode.VISUAL_SEARCH if self.type == "get_day_visual" else StreamMode.DAY

    def day_request(self) -> DayRequest:
        return DayRequest.for_date(self.day)

def parse_client_message(raw: Union[str, bytes]) -> ClientRequest:
    """
    Validate one raw client frame.

    Raises:
        ProtocolError: For invalid JSON, a non-object payload, an unknown
            request type or a missing or unparseable date
    """
    try:
        payload = json.loads(raw)
    except ValueError:
        raise ProtocolError("message is not valid JSON")
    if not isinstance(payload, dict):
        raise ProtocolError("message must be a JSON object")
    try:
        return ClientRequest.model_validate(payload)
    except ValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'message'}: {error['msg']}"
            for error in e.errors()
        )
        raise ProtocolError(detail) from e
