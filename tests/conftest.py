import os
import threading

import pytest

from ssh_keyprov.config import Settings
from ssh_keyprov.models import SessionInfo
from tests.fakes import FakeRemoteHost


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Point HOME at a temp dir and drop KEYPROV_* overrides."""
    for key in list(os.environ):
        if key.startswith("KEYPROV_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    (tmp_path / "home").mkdir()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(local_ssh_dir=tmp_path / "home" / ".ssh", rsa_key_bits=1024)


@pytest.fixture
def session_info() -> SessionInfo:
    return SessionInfo(host="remote.example.com", user="deploy", password="s3cret")


@pytest.fixture
def cancel_flag() -> threading.Event:
    return threading.Event()


@pytest.fixture
def remote_host() -> FakeRemoteHost:
    """Remote host with an existing id_rsa pair and no authorized_keys."""
    return FakeRemoteHost().with_key_pair()


@pytest.fixture
def local_pubkey(settings):
    settings.local_ssh_dir.mkdir(parents=True)
    text = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABlocal alice@laptop\n"
    settings.local_public_key_path.write_text(text)
    return text
