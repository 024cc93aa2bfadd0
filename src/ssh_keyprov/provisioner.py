"""Entry points that sequence discovery, confirmation and generation/installation."""

import threading
from typing import Protocol

from ssh_keyprov.config import Settings, get_settings
from ssh_keyprov.keys import discovery, installer
from ssh_keyprov.keys.local import generate_local
from ssh_keyprov.keys.remote import generate_remote
from ssh_keyprov.logging_config import get_logger
from ssh_keyprov.models import KeyMaterial, SessionInfo
from ssh_keyprov.remote.session import RemoteSession, SessionFactory

logger = get_logger(__name__)


class ConfirmationGate(Protocol):
    """User decisions the provisioning flow needs. Implemented by the UI layer."""

    def confirm_overwrite(self, material: KeyMaterial) -> bool:
        """Return True to replace the existing key pair."""
        ...

    def request_passphrase(self) -> str | None:
        """Return the passphrase ('' for none), or None to abort."""
        ...


class KeyProvisioner:
    """Headless key provisioning for one remote host at a time.

    Each operation opens and closes its own remote session.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        session_factory: SessionFactory | None = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory or self._default_session_factory

    def _default_session_factory(self, info: SessionInfo) -> RemoteSession:
        return RemoteSession(info, poll_interval=self.settings.command_poll_interval)

    def discover(self, info: SessionInfo, cancel_flag: threading.Event) -> KeyMaterial:
        return discovery.discover(
            info, cancel_flag, settings=self.settings, session_factory=self.session_factory
        )

    def generate_local(self, passphrase: str, material: KeyMaterial | None = None) -> KeyMaterial:
        return generate_local(passphrase, settings=self.settings, material=material)

    def generate_remote(
        self,
        info: SessionInfo,
        cancel_flag: threading.Event,
        passphrase: str,
        material: KeyMaterial | None = None,
    ) -> KeyMaterial:
        return generate_remote(
            info,
            cancel_flag,
            passphrase,
            material=material,
            session_factory=self.session_factory,
        )

    def install(self, authorized_keys: str, info: SessionInfo) -> None:
        installer.install(authorized_keys, info, session_factory=self.session_factory)

    def generate_keys(
        self,
        material: KeyMaterial,
        info: SessionInfo,
        cancel_flag: threading.Event,
        gate: ConfirmationGate,
        local: bool,
    ) -> KeyMaterial | None:
        """Confirm with the user, then generate a local or remote key pair.

        Overwrite confirmation is asked whenever a local key is already known,
        for both local and remote generation.

        Returns:
            Updated material, or None if the user declined.
        """
        if material.has_local_key and not gate.confirm_overwrite(material):
            logger.info("key_generation_declined", reason="overwrite_not_confirmed")
            return None

        passphrase = gate.request_passphrase()
        if passphrase is None:
            logger.info("key_generation_declined", reason="passphrase_prompt_cancelled")
            return None

        if local:
            return self.generate_local(passphrase, material=material)
        return self.generate_remote(info, cancel_flag, passphrase, material=material)

    def add_local_key_to_authorized_keys(
        self, info: SessionInfo, cancel_flag: threading.Event
    ) -> KeyMaterial:
        """Append the local public key to the remote authorized_keys, if missing.

        Raises:
            ValueError: if there is no local public key.
        """
        material = self.discover(info, cancel_flag)
        if not material.has_local_key:
            raise ValueError("No local public key found; generate one first")

        merged = installer.merge_authorized_keys(
            material.remote_authorized_keys, material.local_public_key
        )
        if merged == material.remote_authorized_keys:
            logger.info("authorized_keys_unchanged", host=info.host)
            return material

        self.install(merged, info)
        material.remote_authorized_keys = merged
        return material
