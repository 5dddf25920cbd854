"""Shared fixtures: temporary SQLite database, fake mail transport, fake Google flow, sync service, API client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from querylinker_core.db import Base, make_engine
from querylinker_api.dependencies import (
    get_db,
    get_email_service,
    get_embedder,
    get_oauth_adapter,
    get_orchestrator,
    get_sync_service,
)
from querylinker_api.main import app
from querylinker_services.auth.google_oauth import GoogleOAuthAdapter
from querylinker_services.embeddings.embedder import HashEmbedder
from querylinker_services.mail.service import EmailService
from querylinker_services.search.adapters import SolutionStoreAdapter
from querylinker_services.search.orchestrator import SearchOrchestrator
from querylinker_services.search.solution_store import MIN_RELEVANCE_HASH
from querylinker_services.search.sync import SolutionSyncService
from querylinker_services.search.systems import SYSTEMS

from tests.utils.fakes import JIRA_DOCS, TEST_CLIENT_ID, FakeFlow, RecordingTransport, StaticConnector, fake_verify


@pytest.fixture
def session_factory(tmp_path):
    # file-backed so worker threads of the orchestrator see the same data
    engine = make_engine(f"sqlite:///{tmp_path / 'querylinker-test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def embedder():
    return HashEmbedder(dimensions=256)


@pytest.fixture
def outbox():
    return []


@pytest.fixture
def email_service(outbox):
    return EmailService(lambda: RecordingTransport(outbox), provider="console")


@pytest.fixture
def oauth_adapter():
    return GoogleOAuthAdapter(
        TEST_CLIENT_ID, "test-client-secret", "http://localhost:8080/oauth-callback",
        flow_factory=FakeFlow, token_verifier=fake_verify,
    )


@pytest.fixture
def orchestrator(session_factory, embedder):
    adapters = {key: SolutionStoreAdapter(key, session_factory, MIN_RELEVANCE_HASH) for key in SYSTEMS}
    return SearchOrchestrator(adapters, embedder)


@pytest.fixture
def sync_service(session_factory, embedder):
    return SolutionSyncService({"JIRA": StaticConnector("JIRA", JIRA_DOCS)}, session_factory, embedder)


@pytest.fixture
def client(session_factory, embedder, email_service, oauth_adapter, orchestrator, sync_service):
    def override_get_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.dependency_overrides[get_oauth_adapter] = lambda: oauth_adapter
    app.dependency_overrides[get_sync_service] = lambda: sync_service
    # no context manager: startup would create tables in the default database
    yield TestClient(app)
    app.dependency_overrides.clear()
