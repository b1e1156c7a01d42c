"""
Record reading: streams the messages of a recorded session.

Both readers produce the same RecordMessage stream via the RecordSource
protocol. Indexed ROS1 bags go through the rosbags Reader; bags whose
recording was interrupted before the index was written are scanned record by
record with SequentialBagReader.
"""

import bz2
import os
import struct
from collections import Counter
from typing import BinaryIO, Dict, Iterable, Iterator, Optional, Protocol, Set, Tuple

import lz4.frame
from rosbags.rosbag1 import Reader, ReaderError
from rosbags.rosbag1.reader import Header, RecordType, normalize_msgtype, read_uint32

from .models import RecordMessage

BAG_MAGIC = b"#ROSBAG V2.0"


class RecordReadError(IOError):
    """The record file could not be opened or is not a ROS1 bag."""


# ---------------------------------------------------------------------------
# RecordSource protocol
# ---------------------------------------------------------------------------

class RecordSource(Protocol):
    """Protocol for streaming raw messages from a recorded session."""

    def messages(self) -> Iterator[RecordMessage]:
        """Yield messages in stream order. Must be a generator."""
        ...

    def get_metadata(self) -> dict:
        """Return source-specific metadata."""
        ...


# ---------------------------------------------------------------------------
# Low-level record parsing
# ---------------------------------------------------------------------------

def _parse_fields(data: bytes) -> Dict[bytes, bytes]:
    """Split a ROS1 header blob into its name=value fields."""
    fields: Dict[bytes, bytes] = {}
    offset = 0
    while offset + 4 <= len(data):
        (field_len,) = struct.unpack_from("<I", data, offset)
        offset += 4
        if offset + field_len > len(data):
            break
        name, sep, value = data[offset:offset + field_len].partition(b"=")
        offset += field_len
        if sep:
            fields[name] = value
    return fields


def _iter_buffer_records(buf: bytes) -> Iterator[Tuple[Dict[bytes, bytes], bytes]]:
    """Iterate the records packed inside a decompressed chunk."""
    offset = 0
    while offset + 4 <= len(buf):
        (header_len,) = struct.unpack_from("<I", buf, offset)
        offset += 4
        if offset + header_len + 4 > len(buf):
            return
        header = buf[offset:offset + header_len]
        offset += header_len
        (data_len,) = struct.unpack_from("<I", buf, offset)
        offset += 4
        if offset + data_len > len(buf):
            return
        yield _parse_fields(header), buf[offset:offset + data_len]
        offset += data_len


def _op(fields: Dict[bytes, bytes]) -> Optional[int]:
    value = fields.get(b"op")
    return value[0] if value else None


def _decompress(compression: str, data: bytes) -> bytes:
    if compression == "lz4":
        return lz4.frame.decompress(data)
    if compression == "bz2":
        return bz2.decompress(data)
    if compression in ("", "none"):
        return data
    raise ValueError(f"unsupported chunk compression: {compression}")


def _read_bag_header(stream: BinaryIO) -> Header:
    """Check the magic line, read the bag header and skip its padding."""
    if not stream.readline().startswith(BAG_MAGIC):
        raise RecordReadError("Not a ROS1 bag v2.0 file")
    try:
        header = Header.read(stream, RecordType.BAGHEADER)
        padding = read_uint32(stream)
    except ReaderError as e:
        raise RecordReadError(f"Bag header could not be read: {e}") from e
    stream.seek(padding, os.SEEK_CUR)
    return header


def is_bag_truncated(bag_path: str) -> bool:
    """True when the bag's index position is missing or past the file end."""
    with open(bag_path, "rb") as f:
        try:
            index_pos = _read_bag_header(f).get_uint64("index_pos")
        except (RecordReadError, ReaderError):
            return False
        f.seek(0, os.SEEK_END)
        return index_pos == 0 or index_pos >= f.tell()


# ---------------------------------------------------------------------------
# Sequential reader for truncated bags
# ---------------------------------------------------------------------------

class SequentialBagReader:
    """
    Scans a ROS1 bag front to back without using its index.

    Handles:
    - Chunks compressed with none / bz2 / lz4
    - Connection records inside and outside chunks
    - A torn last record (stops cleanly at the last complete one)
    - Damaged chunks (skipped, counted in skipped_chunks)
    """

    def __init__(self, path: str):
        self.path = path
        self.skipped_chunks = 0
        self._connections: Dict[int, Tuple[str, str, str]] = {}

    def messages(
        self, channels: Optional[Iterable[str]] = None
    ) -> Iterator[RecordMessage]:
        wanted: Optional[Set[str]] = set(channels) if channels is not None else None

        with open(self.path, "rb") as f:
            _read_bag_header(f)
            while True:
                try:
                    header = Header.read(f)
                    data_len = read_uint32(f)
                    op = header.get_uint8("op")
                except (ReaderError, KeyError):
                    break
                data = f.read(data_len)
                if len(data) < data_len:
                    break

                if op == RecordType.CONNECTION:
                    self._add_connection(
                        header.get_uint32("conn"), data, header.get_string("topic")
                    )
                elif op == RecordType.CHUNK:
                    try:
                        payload = _decompress(header.get_string("compression"), data)
                    except (ValueError, OSError, RuntimeError, ReaderError):
                        self.skipped_chunks += 1
                        continue
                    yield from self._chunk_messages(payload, wanted)

    def _chunk_messages(
        self, payload: bytes, wanted: Optional[Set[str]]
    ) -> Iterator[RecordMessage]:
        for fields, data in _iter_buffer_records(payload):
            op = _op(fields)
            raw_conn = fields.get(b"conn", b"")
            if len(raw_conn) != 4:
                continue
            conn_id = struct.unpack("<I", raw_conn)[0]
            if op == RecordType.CONNECTION:
                self._add_connection(conn_id, data, fields.get(b"topic", b"").decode())
            elif op == RecordType.MSGDATA:
                raw_time = fields.get(b"time", b"")
                conn = self._connections.get(conn_id)
                if conn is None or len(raw_time) != 8:
                    continue
                topic, msgtype, msgdef = conn
                if wanted is not None and topic not in wanted:
                    continue
                secs, nsecs = struct.unpack("<II", raw_time)
                yield RecordMessage(
                    channel=topic,
                    payload=data,
                    msgtype=msgtype,
                    timestamp_ns=secs * 1_000_000_000 + nsecs,
                    msgdef=msgdef,
                )

    def _add_connection(self, conn_id: int, data: bytes, topic: str = "") -> None:
        if conn_id in self._connections:
            return
        info = _parse_fields(data)
        topic = topic or info.get(b"topic", b"").decode()
        msgtype = info.get(b"type", b"").decode()
        if not topic or not msgtype:
            return
        self._connections[conn_id] = (
            topic,
            normalize_msgtype(msgtype),
            info.get(b"message_definition", b"").decode(errors="replace"),
        )

# ---------------------------------------------------------------------------
# Bag record source
# ---------------------------------------------------------------------------

class BagRecordSource:
    """
    Streams messages of the requested channels from a ROS1 bag.

    Falls back to SequentialBagReader when the bag index is missing.
    """

    def __init__(self, bag_path: str, *, channels: Optional[Iterable[str]] = None):
        if not os.path.isfile(bag_path):
            raise RecordReadError(f"Record file not found: {bag_path}")
        self.bag_path = bag_path
        self.channels = list(channels) if channels is not None else None
        self._metadata: Dict = {
            "source_type": "rosbag",
            "path": bag_path,
            "sequential_scan": False,
            "total_messages": 0,
            "channel_counts": {},
        }

    def messages(self) -> Iterator[RecordMessage]:
        """Generator that streams raw messages from the bag file."""
        counts: Counter = Counter()
        try:
            if is_bag_truncated(self.bag_path):
                print(f"  [INFO] Bag index damaged/missing, using sequential reader for: "
                      f"{os.path.basename(self.bag_path)}")
                self._metadata["sequential_scan"] = True
                stream = self._sequential_messages()
            else:
                stream = self._indexed_messages()

            for message in stream:
                counts[message.channel] += 1
                self._metadata["total_messages"] += 1
                yield message
        finally:
            self._metadata["channel_counts"] = dict(counts)

    def _indexed_messages(self) -> Iterator[RecordMessage]:
        try:
            reader = Reader(self.bag_path)
            reader.open()
        except ReaderError as e:
            raise RecordReadError(f"Could not read bag {self.bag_path}: {e}") from e

        try:
            self._metadata["start_time"] = reader.start_time / 1e9
            self._metadata["end_time"] = reader.end_time / 1e9
            self._metadata["duration_sec"] = reader.duration / 1e9
            connections = [
                c for c in reader.connections
                if self.channels is None or c.topic in self.channels
            ]
            if not connections:
                return
            for conn, ts_ns, rawdata in reader.messages(connections=connections):
                yield RecordMessage(
                    channel=conn.topic,
                    payload=rawdata,
                    msgtype=conn.msgtype,
                    timestamp_ns=ts_ns,
                    msgdef=conn.msgdef,
                )
        finally:
            reader.close()

    def _sequential_messages(self) -> Iterator[RecordMessage]:
        reader = SequentialBagReader(self.bag_path)
        first_ns = last_ns = None
        for message in reader.messages(self.channels):
            if first_ns is None:
                first_ns = message.timestamp_ns
            last_ns = message.timestamp_ns
            yield message
        self._metadata["skipped_chunks"] = reader.skipped_chunks
        if first_ns is not None:
            self._metadata["start_time"] = first_ns / 1e9
            self._metadata["end_time"] = last_ns / 1e9
            self._metadata["duration_sec"] = (last_ns - first_ns) / 1e9

    def get_metadata(self) -> dict:
        return dict(self._metadata)


def open_record(path: str, **kwargs) -> RecordSource:
    """
    Return the RecordSource for ``path``.

    Only ROS1 .bag recordings are supported; anything else raises
    RecordReadError.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext != ".bag":
        raise RecordReadError(f"Unsupported record format: {path}")
    return BagRecordSource(path, **kwargs)
