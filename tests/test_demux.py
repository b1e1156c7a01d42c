import pytest

from learning_data_generator.demux import MessageDemultiplexer
from learning_data_generator.models import RecordMessage


def int_decoder(payload, msgtype, msgdef):
    try:
        return int(payload.decode())
    except ValueError:
        return None


def test_routes_by_channel_in_stream_order():
    received = []
    demux = MessageDemultiplexer()
    demux.register("/pose", int_decoder, lambda s: received.append(("pose", s)))
    demux.register("/chassis", int_decoder, lambda s: received.append(("chassis", s)))

    stream = [
        RecordMessage("/pose", b"1"),
        RecordMessage("/chassis", b"2"),
        RecordMessage("/pose", b"3"),
    ]
    for message in stream:
        assert demux.dispatch(message)

    assert received == [("pose", 1), ("chassis", 2), ("pose", 3)]
    assert demux.dispatched["/pose"] == 2
    assert demux.dispatched["/chassis"] == 1


def test_unknown_channel_is_ignored():
    received = []
    demux = MessageDemultiplexer()
    demux.register("/pose", int_decoder, received.append)

    assert not demux.dispatch(RecordMessage("/camera", b"1"))
    assert received == []
    assert demux.ignored == 1


def test_undecodable_payload_is_dropped_and_logged(capsys):
    received, logged = [], []
    demux = MessageDemultiplexer(log=logged.append)
    demux.register("/pose", int_decoder, received.append)

    assert not demux.dispatch(RecordMessage("/pose", b"garbage", msgtype="x/msg/Y"))
    assert demux.dispatch(RecordMessage("/pose", b"4"))
    assert not demux.dispatch(RecordMessage("/pose", b"junk", msgtype="x/msg/Y"))

    assert received == [4]
    assert demux.decode_failures["/pose"] == 2
    # first drop on a channel is printed even without verbose logging
    printed = capsys.readouterr().out
    assert "[WARN]" in printed and "/pose" in printed
    assert len(logged) == 1
    assert "[WARN]" in logged[0]


def test_handler_failure_still_counts_dispatch():
    def failing(sample):
        raise OSError("write failed")

    demux = MessageDemultiplexer()
    demux.register("/pose", int_decoder, failing)

    with pytest.raises(OSError):
        demux.dispatch(RecordMessage("/pose", b"1"))
    assert demux.dispatched["/pose"] == 1


def test_channel_registered_twice_is_rejected():
    demux = MessageDemultiplexer()
    demux.register("/pose", int_decoder, print)
    try:
        demux.register("/pose", int_decoder, print)
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")
