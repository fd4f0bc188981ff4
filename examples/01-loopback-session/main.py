"""
Loopback Session Example

This example runs a full ESME session against the in-process loopback SMSC:
1. Bind with credentials
2. Submit a few messages (text, UCS2, binary with a port UDH)
3. Trip the client throttle
4. Unbind and stop

Run: python examples/01-loopback-session/main.py
"""

import asyncio
import logging

from smppgate.config import SessionConfig
from smppgate.esme import Session, SessionError, SessionMetrics
from smppgate.esme.transports import LoopbackPeer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


async def main() -> None:
    peer = LoopbackPeer(system_id="demo", password="demo")
    config = SessionConfig(
        bind={"system_id": "demo", "password": "demo"},
        submit={"source_addr": "INFO", "source_addr_ton": 5, "source_addr_npi": 0},
        throttle={"count": 3, "period": 60000},
    )

    session = Session(config, peer.transport)
    metrics = SessionMetrics()
    session.subscribe(metrics)

    session.connect()
    if not await session.wait_bound(timeout=5.0):
        print("Bind failed")
        return
    print(f"Bound to {session.peer_system_id}")

    messages = [
        {"destination": "4915112345678", "content": "Hello from smppgate"},
        {"destination": "4915112345678", "content": "Grüße", "encoding": "UCS2",
         "report": {"final": True}},
        {"destination": "4915112345678", "content": "68656c6c6f", "encoding": "binary",
         "udh": {"port": {"dst": 2948}}},
        {"destination": "4915112345678", "content": "one too many"},
    ]
    for message in messages:
        try:
            message_id = await session.submit(message)
            print(f"Accepted: {message_id}")
        except SessionError as e:
            print(f"Rejected: {e}")

    await session.stop()
    print(metrics.render().decode())


if __name__ == "__main__":
    asyncio.run(main())
