"""In-process stand-ins for the mail transport, the Google OAuth flow and live connectors."""

from querylinker_services.mail.transports import MailTransport, SendReceipt
from querylinker_services.search.connectors import HttpConnector, RemoteDocument


class RecordingTransport(MailTransport):
    name = "console"

    def __init__(self, outbox):
        self.outbox = outbox

    def send(self, message):
        self.outbox.append(message)
        return SendReceipt(message_id=f"test-{len(self.outbox)}")


class FakeFlow:
    """Stands in for google_auth_oauthlib Flow: codes starting with 'good-' exchange successfully."""

    def authorization_url(self, **params):
        query = "&".join(f"{k}={v}" for k, v in sorted(params.items()))
        return f"https://accounts.example.test/o/oauth2/auth?{query}", "state-1"

    def fetch_token(self, code):
        if not code.startswith("good-"):
            raise ValueError("invalid_grant")
        return {"access_token": "at", "id_token": f"idtoken-{code[5:]}"}


TEST_CLIENT_ID = "test-client-id"

GOOGLE_PROFILES = {
    "idtoken-alice": {
        "sub": "google-sub-alice",
        "email": "alice@example.com",
        "name": "Alice Example",
        "picture": "https://example.test/alice.png",
        "email_verified": True,
    },
    "idtoken-bob": {
        "sub": "google-sub-bob",
        "email": "bob@example.com",
        "email_verified": False,
    },
    "idtoken-dave": {
        "sub": "google-sub-dave",
        "email": "dave@example.com",
        "name": "Dave Example",
        "email_verified": True,
    },
    "idtoken-dave-other": {
        "sub": "google-sub-dave-2",
        "email": "dave@example.com",
        "email_verified": True,
    },
    "idtoken-nomail": {
        "sub": "google-sub-nomail",
    },
}


def fake_verify(token, audience):
    assert audience == TEST_CLIENT_ID
    if token not in GOOGLE_PROFILES:
        raise ValueError("Token used too late")
    return dict(GOOGLE_PROFILES[token])


class StaticConnector(HttpConnector):
    """A live connector whose remote system returns a fixed list of documents."""

    def __init__(self, system, docs=(), error=None):
        super().__init__(f"https://{system.lower()}.example.test", session=object())
        self.system = system
        self.docs = list(docs)
        self.error = error
        self.fetches = []

    def search_documents(self, query, limit):
        return [d for d in self.docs if query.lower() in f"{d.title} {d.content}".lower()][:limit]

    def fetch_recent(self, limit):
        self.fetches.append(limit)
        if self.error is not None:
            raise self.error
        return self.docs[:limit]


JIRA_DOCS = [
    RemoteDocument(
        external_id="OPS-31",
        title="Redis evictions during peak",
        content="Evictions spike at peak traffic. Raise maxmemory and switch to allkeys-lru.",
        external_url="https://jira.example.test/browse/OPS-31",
        author="kim",
        tags=["redis"],
    ),
    RemoteDocument(
        external_id="OPS-32",
        title="TLS handshake failures",
        content="Clients fail the TLS handshake after the cert rotation. Restore the intermediate chain.",
    ),
]
