from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel.pool import StaticPool

from heritage_whisper.core.database import create_all
from heritage_whisper.core.database.entities import User
from heritage_whisper.integrations import EmailMessage
from heritage_whisper.server.services.rate_limit import reset_all_limiters

# Use in-memory SQLite for testing
# Note: We use check_same_thread=False for SQLite with async
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingResend:
    """Stands in for ``ResendClient`` and keeps every message it is asked to send."""

    def __init__(self, fail_for: Optional[str] = None) -> None:
        self.sent: List[EmailMessage] = []
        self.fail_for = fail_for

    async def send(self, message: EmailMessage) -> Optional[str]:
        from heritage_whisper.integrations import ResendApiError

        if self.fail_for and self.fail_for in message.to:
            raise ResendApiError("Resend send failed: 500", status_code=500)
        self.sent.append(message)
        return f"email-{len(self.sent)}"

    async def aclose(self) -> None:
        return None

    def subjects(self) -> List[str]:
        return [message.subject for message in self.sent]


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    reset_all_limiters()
    yield
    reset_all_limiters()


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture(name="session")
async def session_fixture(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(session: AsyncSession) -> User:
    """The signed-in storyteller."""
    storyteller = User(id="user-1", email="margaret@example.com", name="Margaret", birth_year=1950)
    session.add(storyteller)
    await session.commit()
    await session.refresh(storyteller)
    return storyteller


@pytest.fixture
def resend() -> RecordingResend:
    return RecordingResend()


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession, session_factory, user: User, resend: RecordingResend) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with overridden dependencies.

    Requests run as ``user``; Supabase, Stripe, PDFShift and OpenAI are
    unconfigured and email goes to ``resend``.
    """
    from heritage_whisper.core.database import get_session
    from heritage_whisper.prompts.tier3 import Tier3Analyzer
    from heritage_whisper.server.main import app
    from heritage_whisper.server.services import deps
    from heritage_whisper.storytelling.transcripts import TranscriptAssistant

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    async def get_current_user_override() -> User:
        return user

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[deps.get_session_factory] = lambda: session_factory
    app.dependency_overrides[deps.get_current_user] = get_current_user_override
    app.dependency_overrides[deps.get_supabase_client] = lambda: None
    app.dependency_overrides[deps.get_transcription_client] = lambda: None
    app.dependency_overrides[deps.get_transcript_assistant] = lambda: TranscriptAssistant(model=None)
    app.dependency_overrides[deps.get_tier3_analyzer] = lambda: Tier3Analyzer(model=None)
    app.dependency_overrides[deps.get_resend_client] = lambda: resend
    app.dependency_overrides[deps.get_stripe_client] = lambda: None
    app.dependency_overrides[deps.get_pdfshift_client] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
        yield client

    app.dependency_overrides.clear()
