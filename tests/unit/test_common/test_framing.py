from chatbridge.common.framing import NDJSONDecoder, SSEDecoder, encode_ndjson, encode_sse_json


class TestSSEDecoder:
    def test_payload_split_across_chunks(self):
        decoder = SSEDecoder()
        assert decoder.feed(b'data: {"a"') == []
        assert decoder.feed(b': 1}\n\n') == ['{"a": 1}']

    def test_crlf_and_non_data_lines(self):
        decoder = SSEDecoder()
        payloads = decoder.feed(b": keep-alive\r\nevent: chunk\r\ndata: one\r\n\r\ndata:two\r\n")
        assert payloads == ["one", "two"]

    def test_multibyte_character_split_between_chunks(self):
        decoder = SSEDecoder()
        encoded = 'data: {"t": "héllo"}\n'.encode("utf-8")
        split_at = encoded.index(b"\xc3") + 1
        assert decoder.feed(encoded[:split_at]) == []
        assert decoder.feed(encoded[split_at:]) == ['{"t": "héllo"}']

    def test_flush_returns_unterminated_payload(self):
        decoder = SSEDecoder()
        assert decoder.feed(b"data: [DONE]") == []
        assert decoder.flush() == ["[DONE]"]
        assert decoder.flush() == []


class TestNDJSONDecoder:
    def test_lines_and_blank_lines(self):
        decoder = NDJSONDecoder()
        assert decoder.feed(b'{"a":1}\n\n{"b"') == ['{"a":1}']
        assert decoder.feed(b":2}\n") == ['{"b":2}']


def test_encode_sse_json_with_event():
    assert encode_sse_json({"type": "ping"}, event="ping") == b'event: ping\ndata: {"type": "ping"}\n\n'


def test_encode_sse_json_without_event():
    assert encode_sse_json({"a": "é"}) == 'data: {"a": "é"}\n\n'.encode("utf-8")


def test_encode_ndjson():
    assert encode_ndjson({"done": True}) == b'{"done": true}\n'
