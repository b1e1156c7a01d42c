"""
Message demultiplexer: routes raw record messages to sample handlers.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .models import RecordMessage

Decoder = Callable[[bytes, str, str], Optional[Any]]
Handler = Callable[[Any], Any]


@dataclass
class Route:
    decoder: Decoder
    handler: Handler


class MessageDemultiplexer:
    """
    Dispatches each message of the stream to the handler of its channel.

    Messages on unregistered channels are ignored. Messages whose payload
    does not decode are dropped and logged; their handler is never called,
    so they advance no window or batch counter.
    """

    def __init__(self, *, log: Optional[Callable[[str], None]] = None):
        self._routes: Dict[str, Route] = {}
        self._log = log or (lambda msg: None)
        self.dispatched: Counter = Counter()      # channel -> handled messages
        self.decode_failures: Counter = Counter()  # channel -> dropped messages
        self.ignored = 0

    def register(self, channel: str, decoder: Decoder, handler: Handler) -> None:
        if channel in self._routes:
            raise ValueError(f"Channel already routed: {channel}")
        self._routes[channel] = Route(decoder=decoder, handler=handler)

    @property
    def channels(self):
        return list(self._routes)

    def dispatch(self, message: RecordMessage) -> bool:
        """
        Decode and route one message.

        Returns True if a handler was invoked. Exceptions raised by the
        handler propagate to the caller.
        """
        route = self._routes.get(message.channel)
        if route is None:
            self.ignored += 1
            return False

        sample = route.decoder(message.payload, message.msgtype, message.msgdef)
        if sample is None:
            self.decode_failures[message.channel] += 1
            warning = (
                f"  [WARN] Dropped undecodable {message.msgtype or 'message'} on "
                f"{message.channel} at t={message.timestamp_ns}"
            )
            # First drop per channel is always shown; the rest only when verbose
            if self.decode_failures[message.channel] == 1:
                print(warning)
            else:
                self._log(warning)
            return False

        self.dispatched[message.channel] += 1
        route.handler(sample)
        return True
