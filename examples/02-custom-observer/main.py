"""
Custom Observer Example

This example shows how to follow the session lifecycle:
1. Implement the SessionObserver protocol
2. Subscribe it to a session
3. Watch a reconnect after the peer drops the connection

Run: python examples/02-custom-observer/main.py
"""

import asyncio

from smppgate.config import SessionConfig
from smppgate.esme import LifecycleEvent, Session, SessionEvent
from smppgate.esme.transports import LoopbackPeer


class ConsoleObserver:
    """Prints every lifecycle event."""

    def __init__(self, prefix: str = "[SESSION]"):
        self._prefix = prefix

    def on_event(self, event: SessionEvent) -> None:
        details = ", ".join(f"{k}={v}" for k, v in event.data.items() if v is not None)
        if event.kind is LifecycleEvent.ERROR:
            print(f"{self._prefix} error({event.error.value}) {details}")
        else:
            print(f"{self._prefix} {event.kind.value} {details}".rstrip())


async def main() -> None:
    peer = LoopbackPeer(system_id="demo", password="demo")
    config = SessionConfig(
        bind={"system_id": "demo", "password": "demo"},
        timeouts={"reconnect": 500, "reconnect_long": 1000},
    )

    session = Session(config, peer.transport)
    session.subscribe(ConsoleObserver())

    session.connect()
    await session.wait_bound(timeout=5.0)

    print("Peer drops the connection...")
    peer.disconnect()
    await asyncio.sleep(0)
    await session.wait_bound(timeout=5.0)

    peer.deliver({"receipted_message_id": "4f2a", "short_message": b"id:4f2a stat:DELIVRD"})
    await asyncio.sleep(0.1)

    await session.stop()


if __name__ == "__main__":
    asyncio.run(main())
