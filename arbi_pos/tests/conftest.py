"""
Centralized Test Configuration.
"""

import asyncio
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from arbi_pos.app.main import app
from arbi_pos.app.db.session import Base
from arbi_pos.app.domain.enums import OrderStatus, PaymentMethod, Station
from arbi_pos.app.domain.records import Customer, Order, OrderItem, PaymentInfo
from arbi_pos.app.printing.session import PrinterSession
from arbi_pos.app.printing.transport import DeviceHandle, ScanResult
from arbi_pos.app.services.print_service import PrintService
from arbi_pos.app.services.sql_store import SqlStore
from arbi_pos.app.services.store import InMemoryStore

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

PRINTER = DeviceHandle(address="66:22:B3:10:4F:01", name="Counter Printer", paired=True)
CUSTOMER_PHONE = "9800000001"


class FakeTransport:
    """
    Scripted Bluetooth transport.

    Every call is appended to 'calls'. fail_on_call makes the n-th print
    primitive (1-based, counted across init/align/write_text/feed) raise.
    """

    def __init__(self):
        self.calls = []
        self.supported = True
        self.enabled = True
        self.enable_result = True
        self.permissions = True
        self.paired = (PRINTER,)
        self.found = ()
        self.scan_error = None
        self.connect_error = None
        self.connect_delay = 0.0
        self.disconnect_error = None
        self.fail_on_call = None
        self.gate = None  # asyncio.Event that holds write_text until set
        self.primitive_count = 0

    def is_supported(self):
        return self.supported

    async def is_enabled(self):
        return self.enabled

    async def enable(self):
        self.calls.append(("enable",))
        self.enabled = self.enable_result
        return self.enabled

    async def request_permissions(self):
        return self.permissions

    async def scan(self):
        self.calls.append(("scan",))
        if self.scan_error:
            raise self.scan_error
        return ScanResult(paired=tuple(self.paired), found=tuple(self.found))

    async def connect(self, address):
        self.calls.append(("connect", address))
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error:
            raise self.connect_error

    async def disconnect(self):
        self.calls.append(("disconnect",))
        if self.disconnect_error:
            raise self.disconnect_error

    async def _primitive(self, *call):
        self.primitive_count += 1
        if self.fail_on_call == self.primitive_count:
            raise OSError("link lost")
        self.calls.append(call)

    async def init(self):
        await self._primitive("init")

    async def align(self, mode):
        await self._primitive("align", mode)

    async def write_text(self, text, font):
        if self.gate is not None:
            await self.gate.wait()
        await self._primitive("write_text", text, font)

    async def feed(self, lines):
        await self._primitive("feed", lines)

    @property
    def primitives(self):
        return [call for call in self.calls if call[0] in ("init", "align", "write_text", "feed")]

    @property
    def printed_text(self):
        return "".join(call[1] for call in self.calls if call[0] == "write_text")


@pytest.fixture
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def printer_session(transport):
    return PrinterSession(transport, connect_timeout=0.2, max_reconnect_attempts=3)


@pytest.fixture
async def connected_session(printer_session):
    await printer_session.enable()
    await printer_session.connect(PRINTER)
    return printer_session


@pytest.fixture
def print_service(printer_session):
    return PrintService(printer_session)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def sql_store(setup_database):
    return SqlStore(TestingSessionLocal)


@pytest.fixture(params=["memory", "sql"])
def store(request, memory_store, sql_store):
    """Both store implementations, for behaviour they must share."""
    return memory_store if request.param == "memory" else sql_store


def make_credit_order(order_id, amount, timestamp, phone=CUSTOMER_PHONE, name="Ram Thapa", status=OrderStatus.COMPLETED):
    amount = Decimal(amount)
    return Order(
        id=order_id,
        table_id="T1",
        created_at=timestamp,
        status=status,
        items=[OrderItem(menu_item_id="m1", name="Momo", price=amount, quantity=1)],
        customer_name=name,
        customer_phone=phone,
        payment=PaymentInfo(
            method=PaymentMethod.CREDIT,
            amount=amount,
            amount_paid=amount,
            customer_name=name,
            customer_phone=phone,
            timestamp=timestamp,
        ),
    )


def make_mixed_order(order_id="ORD-00042", timestamp=1700000000000):
    """2 kitchen items and 1 bar item."""
    return Order(
        id=order_id,
        table_id="T4",
        created_at=timestamp,
        items=[
            OrderItem(menu_item_id="m1", name="Chicken Momo", price=Decimal("250"), quantity=2),
            OrderItem(menu_item_id="m2", name="Thukpa", price=Decimal("180"), quantity=1, modifiers=("extra spicy",)),
            OrderItem(menu_item_id="m3", name="Mojito", price=Decimal("320"), quantity=1, order_type=Station.BOT),
        ],
        service_charge_percentage=Decimal("10"),
        tax_percentage=Decimal("13"),
    )


async def seed_customer(store, credit="80.00", orders=(("A", "50.00", 1), ("B", "30.00", 2))):
    """A customer owing on two credit orders: A 50.00 (oldest) and B 30.00."""
    customer = Customer(id="C1", name="Ram Thapa", phone=CUSTOMER_PHONE, credit_amount=Decimal(credit))
    await store.add_customer(customer)
    for order_id, amount, timestamp in orders:
        await store.add_order(make_credit_order(order_id, amount, timestamp))
    return customer


@pytest.fixture
async def client(sql_store, printer_session):
    """Async client for testing."""
    app.state.store = sql_store
    app.state.printer_session = printer_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
