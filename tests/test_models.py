from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from streaming.exceptions import ProtocolError
from streaming.models import (
    BlockPayload,
    DayRequest,
    ErrorMessage,
    NewBlockMessage,
    StreamMode,
    Transaction,
    parse_client_message,
)
from fakes import DAY_START, make_edge


class TestDayRequest:
    def test_covers_whole_utc_day(self):
        day = DayRequest.for_date(date(2024, 1, 15))
        assert day.start == datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert day.start_timestamp == DAY_START
        assert day.end_timestamp == DAY_START + 86399

    def test_is_immutable(self):
        day = DayRequest.for_date(date(2024, 1, 15))
        with pytest.raises(ValidationError):
            day.start = datetime(2024, 1, 16, tzinfo=timezone.utc)

    def test_previous_crosses_month_boundary(self):
        assert DayRequest.for_date(date(2024, 3, 1)).previous().day == date(2024, 2, 29)

    def test_first_representable_day_has_no_previous(self):
        assert DayRequest.for_date(date.min).previous() is None

    def test_label(self):
        assert DayRequest.for_date(date(2024, 1, 15)).label == "Mon Jan 15 2024"


class TestTransaction:
    def test_from_edge_last_duplicate_tag_wins(self):
        edge = make_edge("tx1", size=42, tags=[
            {"name": "Content-Type", "value": "text/plain"},
            {"name": "App-Name", "value": "demo"},
            {"name": "Content-Type", "value": "image/png"},
        ])
        tx = Transaction.from_edge(edge)
        assert tx.data_size == 42
        assert tx.tags == {"Content-Type": "image/png", "App-Name": "demo"}
        assert tx.is_image

    def test_missing_data_defaults_to_zero_size(self):
        tx = Transaction.from_edge({"node": {"id": "tx2", "data": None, "tags": []}})
        assert tx.data_size == 0
        assert tx.content_type == "other"

    def test_payload_carries_category_and_color(self):
        payload = Transaction.from_edge(make_edge("tx3", "image/jpeg")).to_payload()
        assert payload["contentCategory"] == "image/jpeg"
        assert payload["color"] == 0xff1493
        assert payload["tags"] == {"Content-Type": "image/jpeg"}


class TestServerMessages:
    def test_block_payload_spreads_block_metadata(self):
        block = {"height": 999, "timestamp": DAY_START, "indep_hash": "abc"}
        txs = [Transaction.from_edge(make_edge("tx1", "image/png"))]
        message = NewBlockMessage(data=BlockPayload.build(block, 10, txs, True)).model_dump()
        assert message["type"] == "newBlock"
        assert message["data"]["height"] == 10
        assert message["data"]["indep_hash"] == "abc"
        assert message["data"]["isVisual"] is True
        assert message["data"]["transactions"][0]["id"] == "tx1"

    def test_error_message(self):
        assert ErrorMessage(message="nope").model_dump() == {"type": "error", "message": "nope"}


class TestParseClientMessage:
    def test_get_day(self):
        request = parse_client_message('{"type": "get_day", "date": "2024-01-15"}')
        assert request.day == date(2024, 1, 15)
        assert request.mode == StreamMode.DAY
        assert request.day_request().start_timestamp == DAY_START

    def test_get_day_visual_with_datetime(self):
        request = parse_client_message(b'{"type": "get_day_visual", "date": "2024-01-15T00:00:00.000Z"}')
        assert request.mode == StreamMode.VISUAL_SEARCH
        assert request.day == date(2024, 1, 15)

    def test_offset_datetime_is_converted_to_utc_day(self):
        request = parse_client_message('{"type": "get_day", "date": "2024-01-15T23:30:00-02:00"}')
        assert request.day == date(2024, 1, 16)

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2]",
        '{"type": "get_week", "date": "2024-01-15"}',
        '{"type": "get_day"}',
        '{"type": "get_day", "date": "yesterday"}',
        '{"type": "get_day", "date": 1705276800}',
        '{"type": "get_day", "date": "9999-12-31"}',
        '{"type": "get_day", "date": "9999-12-31T23:30:00-02:00"}',
    ])
    def test_rejects_malformed_requests(self, raw):
        with pytest.raises(ProtocolError):
            parse_client_message(raw)

    def test_error_detail_names_the_field(self):
        with pytest.raises(ProtocolError, match="date"):
            parse_client_message('{"type": "get_day", "date": "15/01/2024"}')
