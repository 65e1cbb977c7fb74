"""
RFCOMM transport tests.

The socket layer is mocked: these check the bytes handed to the event loop
and the link bookkeeping, not a real radio.
"""

import asyncio

import pytest

from arbi_pos.app.printing.primitives import EMPHASIS, Align
from arbi_pos.app.printing.transport import RfcommTransport, parse_known_devices


def test_parse_known_devices():
    devices = parse_known_devices(["66:22:b3:10:4f:01=Counter Printer", " 00:11:22:33:44:55 ", ""])

    assert [(d.address, d.name, d.paired) for d in devices] == [
        ("66:22:B3:10:4F:01", "Counter Printer", True),
        ("00:11:22:33:44:55", "00:11:22:33:44:55", True),
    ]


@pytest.mark.asyncio
async def test_scan_reports_known_devices():
    known = parse_known_devices(["66:22:B3:10:4F:01=Counter Printer"])

    result = await RfcommTransport(known_devices=known).scan()

    assert result.paired == known
    assert result.found == ()


@pytest.fixture
async def rfcomm(mocker):
    transport = RfcommTransport(channel=2)
    sock = mocker.MagicMock()
    mocker.patch.object(transport, "_new_socket", return_value=sock)
    loop = asyncio.get_running_loop()
    connect = mocker.patch.object(loop, "sock_connect", new_callable=mocker.AsyncMock)
    sendall = mocker.patch.object(loop, "sock_sendall", new_callable=mocker.AsyncMock)
    return transport, sock, connect, sendall


@pytest.mark.asyncio
async def test_connect_and_send_escpos_bytes(rfcomm):
    transport, sock, connect, sendall = rfcomm

    await transport.connect("66:22:B3:10:4F:01")
    await transport.init()
    await transport.align(Align.CENTER)
    await transport.write_text("TOTAL\n", EMPHASIS)
    await transport.feed(3)

    sock.setblocking.assert_called_once_with(False)
    connect.assert_awaited_once_with(sock, ("66:22:B3:10:4F:01", 2))
    assert [call.args[1] for call in sendall.await_args_list] == [
        b"\x1b@",
        b"\x1ba\x01",
        b"\x1d!\x11\x1bE\x01TOTAL\n",
        b"\x1bd\x03",
    ]


@pytest.mark.asyncio
async def test_failed_connect_closes_socket(rfcomm):
    transport, sock, connect, _ = rfcomm
    connect.side_effect = OSError("Host is down")

    with pytest.raises(OSError):
        await transport.connect("66:22:B3:10:4F:01")

    sock.close.assert_called_once()
    with pytest.raises(ConnectionError):
        await transport.init()


@pytest.mark.asyncio
async def test_disconnect_closes_link(rfcomm):
    transport, sock, _, _ = rfcomm
    await transport.connect("66:22:B3:10:4F:01")

    await transport.disconnect()
    await transport.disconnect()

    sock.close.assert_called_once()


@pytest.mark.asyncio
async def test_permission_probe(mocker):
    transport = RfcommTransport()
    mocker.patch.object(transport, "_new_socket", side_effect=PermissionError("denied"))

    assert await transport.request_permissions() is False
