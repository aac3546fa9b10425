import pytest

from hybridchat.config import AppConfig
from hybridchat.settings import KeyValueStorage, Settings
from hybridchat.store import ConversationStore


@pytest.fixture
def storage(tmp_path):
    return KeyValueStorage(tmp_path / "data")


@pytest.fixture
def settings(storage):
    return Settings(storage)


@pytest.fixture
def store(storage):
    return ConversationStore(storage)


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        data_dir=str(tmp_path / "data"),
        poe_base_url="https://poe.test",
        request_timeout=5.0,
        usage_delay_seconds=0.0,
    )
