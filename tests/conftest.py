"""
Test configuration and fixtures.

Provides:
- A fresh SQLite database file per test (schema from metadata)
- In-memory photo storage and messaging channel fakes
- Party rows (client, technician, admin) and Bearer tokens for them
- HTTPX AsyncClient wired to the app with dependency overrides
"""
import itertools
import uuid
from dataclasses import dataclass, field
from typing import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker

from complaint_desk.core.deps import (
    get_auto_assignment_policy,
    get_db,
    get_messaging_channel,
    get_photo_storage,
)
from complaint_desk.core.security import create_session_token
from complaint_desk.db.base import Base
from complaint_desk.db.enums import Role
from complaint_desk.db.models import Admin, Client, Technician
from complaint_desk.db.session import build_engine
from complaint_desk.main import app
from complaint_desk.services.auto_assignment import AutoAssignmentPolicy
from complaint_desk.services.messaging_channel import SendResult
from complaint_desk.services.photo_storage import StoredPhoto
from complaint_desk.utils.file_upload import PhotoUpload

DEFAULT_TECHNICIAN_PHONE = "9545445133"
CLIENT_PHONE = "9876543210"


# =============================================================================
# Fakes
# =============================================================================

class FakePhotoStorage:
    """Keeps uploads in memory; ``fail_on`` lists 1-based upload attempts that fail."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_on: set[int] = set()
        self.attempts = 0
        self._counter = itertools.count(1)

    def upload(self, file: PhotoUpload, folder: str) -> StoredPhoto:
        self.attempts += 1
        if self.attempts in self.fail_on:
            raise RuntimeError("storage unavailable")
        key = f"{folder}/photo-{next(self._counter)}.jpg"
        self.objects[key] = file.content
        return StoredPhoto(
            url=f"https://photos.test/{key}",
            storage_key=key,
            original_name=file.filename,
        )

    def delete(self, storage_key: str) -> None:
        self.deleted.append(storage_key)
        self.objects.pop(storage_key, None)


@dataclass
class SentMessage:
    recipient: str
    template_kind: str
    variables: dict


@dataclass
class FakeChannel:
    """Records sends; can be switched to fail or raise."""

    fail_with: str | None = None
    raise_error: bool = False
    sent: list[SentMessage] = field(default_factory=list)

    def send(self, recipient: str, template_kind: str, variables: dict) -> SendResult:
        self.sent.append(SentMessage(recipient, template_kind, dict(variables)))
        if self.raise_error:
            raise RuntimeError("channel exploded")
        if self.fail_with:
            return SendResult(success=False, error=self.fail_with)
        return SendResult(success=True, external_message_id=f"req-{len(self.sent)}")


def make_photo(name: str = "photo.jpg", content_type: str = "image/jpeg", size: int = 16) -> PhotoUpload:
    return PhotoUpload(filename=name, content_type=content_type, content=b"x" * size)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def engine(tmp_path):
    """Fresh SQLite file per test so separate sessions see committed data."""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'complaint_desk_test.db'}")
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage() -> FakePhotoStorage:
    return FakePhotoStorage()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def policy() -> AutoAssignmentPolicy:
    return AutoAssignmentPolicy(DEFAULT_TECHNICIAN_PHONE)


# =============================================================================
# Parties
# =============================================================================

@pytest.fixture
def client_party(db: Session) -> Client:
    party = Client(id=uuid.uuid4(), name="Kharadi Store", phone_number=CLIENT_PHONE)
    db.add(party)
    db.commit()
    return party


@pytest.fixture
def technician(db: Session) -> Technician:
    tech = Technician(id=uuid.uuid4(), name="Ravi", phone_number="9123456780")
    db.add(tech)
    db.commit()
    return tech


@pytest.fixture
def other_technician(db: Session) -> Technician:
    tech = Technician(id=uuid.uuid4(), name="Sunil", phone_number="9000000001")
    db.add(tech)
    db.commit()
    return tech


@pytest.fixture
def default_technician(db: Session) -> Technician:
    tech = Technician(id=uuid.uuid4(), name="Default Tech", phone_number=DEFAULT_TECHNICIAN_PHONE)
    db.add(tech)
    db.commit()
    return tech


@pytest.fixture
def admin(db: Session) -> Admin:
    party = Admin(id=uuid.uuid4(), name="Ops Admin", phone_number="9000000009")
    db.add(party)
    db.commit()
    return party


# =============================================================================
# Auth + Client Fixtures
# =============================================================================

def bearer(actor_id: uuid.UUID, role: Role) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_session_token(actor_id, role.value)}"}


@pytest.fixture
def client_headers(client_party: Client) -> dict[str, str]:
    return bearer(client_party.id, Role.CLIENT)


@pytest.fixture
def technician_headers(technician: Technician) -> dict[str, str]:
    return bearer(technician.id, Role.TECHNICIAN)


@pytest.fixture
def admin_headers(admin: Admin) -> dict[str, str]:
    return bearer(admin.id, Role.ADMIN)


@pytest.fixture(scope="function")
async def api(
    session_factory, storage: FakePhotoStorage, channel: FakeChannel, policy: AutoAssignmentPolicy
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient with a session per request and in-memory collaborators."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_photo_storage] = lambda: storage
    app.dependency_overrides[get_messaging_channel] = lambda: channel
    app.dependency_overrides[get_auto_assignment_policy] = lambda: policy

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
