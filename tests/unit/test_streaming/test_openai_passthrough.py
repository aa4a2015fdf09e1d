import json

from chatbridge.streaming import OpenAIStreamPassthrough
from tests.helpers import chunk, parse_sse_events


def test_chunks_reframed_and_single_done():
    translator = OpenAIStreamPassthrough(model="m")
    out = translator.feed(json.dumps(chunk("hi")))
    out += translator.feed("garbage")
    out += translator.feed("[DONE]")
    out += translator.finish()
    events = parse_sse_events(b"".join(out))
    assert events == [(None, chunk("hi")), (None, "[DONE]")]
