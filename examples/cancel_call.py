"""
Canceling a Call
================

Stop an in-flight call from another thread, or from another task.
"""

import threading
import time

import anyio
import httpx

import httptap

# Served over two seconds, one byte at a time.
DRIP_URL = "https://httpbin.org/drip?duration=2&numbytes=20&delay=0"
# Headers arrive after a two second delay.
DELAY_URL = "https://httpbin.org/delay/2"


def cancel_from_thread() -> None:
    start = time.monotonic()
    with httptap.TapSettings().build_client() as client:
        call = httptap.Call(client, client.build_request("GET", DRIP_URL))

        def cancel() -> None:
            print(f"  {time.monotonic() - start:.2f} Canceling call.")
            call.cancel()
            print(f"  {time.monotonic() - start:.2f} Canceled call.")

        threading.Timer(1.0, cancel).start()
        print(f"  {time.monotonic() - start:.2f} Executing call.")
        try:
            response = call.execute()
            print(
                f"  {time.monotonic() - start:.2f} Call was expected to fail, "
                f"but completed: {response}"
            )
        except httpx.TransportError as exc:
            print(f"  {time.monotonic() - start:.2f} Call failed as expected: {exc!r}")


async def cancel_from_task() -> None:
    start = time.monotonic()
    dispatcher = httptap.Dispatcher()
    async with httptap.TapSettings().build_async_client() as client:
        call = dispatcher.new_async_call(client, client.build_request("GET", DELAY_URL))

        async def cancel_later() -> None:
            await anyio.sleep(1.0)
            dispatcher.cancel_all()

        async with anyio.create_task_group() as tg:
            tg.start_soon(cancel_later)
            try:
                await call.execute()
            except httptap.CallCancelled as exc:
                print(f"  {time.monotonic() - start:.2f} Call failed as expected: {exc!r}")


def main() -> None:
    print("── Cancel from another thread ─────────────────────────────────")
    cancel_from_thread()
    print()

    print("── Cancel every async call ────────────────────────────────────")
    anyio.run(cancel_from_task)


if __name__ == "__main__":
    main()
