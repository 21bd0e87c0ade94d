import pytest

from bingo.messaging.router import MessageRouter
from bingo.server.app import create_app
from bingo.server.settings import BingoServerSettings
from bingo.session.manager import SessionManager
from bingo.tests.helpers.session import TERMS, make_session
from bingo.tests.helpers.websocket import TEST_OPERATOR_PASSWORD
from bingo.tests.mocks import MockConnection


@pytest.fixture
def game():
    return make_session()


@pytest.fixture
def session_manager(game):
    return SessionManager(game)


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def server_settings():
    return BingoServerSettings(operator_password=TEST_OPERATOR_PASSWORD, initial_terms=TERMS, card_size=4)


@pytest.fixture
def app(server_settings, session_manager, message_router):
    return create_app(
        settings=server_settings,
        session_manager=session_manager,
        message_router=message_router,
    )
