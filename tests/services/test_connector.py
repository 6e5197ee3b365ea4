import pytest

from sshrelease.errors import ConnectError
from sshrelease.models import Host
from sshrelease.services.connector import HostConnector
from sshrelease.services.memory_transport import RecordingSession


class RecordingLogger:
    def __init__(self):
        self.messages = []

    def _record(self, message, *args, **_kwargs):
        self.messages.append(message % args if args else message)

    debug = info = warning = error = _record

    def has(self, text):
        return any(text in message for message in self.messages)


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


def test_connect_all_returns_one_session_per_host():
    logger = RecordingLogger()
    sessions = [RecordingSession(), RecordingSession(), RecordingSession()]
    hosts = [Host(f"web{i}", "deploy", session=session) for i, session in enumerate(sessions)]
    connector = HostConnector(logger=logger, console=DummyConsole(), auth_sock="/tmp/agent.sock")

    connected = connector.connect_all(hosts)

    assert [hs.address for hs in connected] == ["web0", "web1", "web2"]
    assert all(session.connected for session in sessions)
    assert sessions[1].username == "deploy"
    assert sessions[1].auth_sock == "/tmp/agent.sock"
    assert logger.has("Successful connection to web2")


def test_connect_uses_factory_when_host_has_no_session():
    created = []

    def factory():
        session = RecordingSession()
        created.append(session)
        return session

    connector = HostConnector(logger=RecordingLogger(), console=DummyConsole(), session_factory=factory)

    connected = connector.connect_all([Host("web1", "deploy", port=2222)])

    assert len(created) == 1
    assert connected[0].session is created[0]
    assert created[0].address == "web1"


def test_single_failure_fails_setup_and_releases_other_sessions():
    logger = RecordingLogger()
    good = RecordingSession()
    bad = RecordingSession(connect_error=OSError("connection refused"))
    connector = HostConnector(logger=logger, console=DummyConsole())

    with pytest.raises(ConnectError, match="web2"):
        connector.connect_all([Host("web1", "deploy", session=good), Host("web2", "deploy", session=bad)])

    assert logger.has("Failed to connect to web2: connection refused")
    assert logger.has("Successful connection to web1")
    assert good.dispose_count == 1


def test_dispose_errors_are_logged_not_raised():
    logger = RecordingLogger()
    session = RecordingSession(dispose_error=OSError("already closed"))
    connector = HostConnector(logger=logger, console=DummyConsole())
    (host_session,) = connector.connect_all([Host("web1", "deploy", session=session)])

    connector.dispose(host_session)

    assert logger.has("Could not close connection to web1: already closed")
