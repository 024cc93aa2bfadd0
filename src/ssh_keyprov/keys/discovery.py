"""Discovery of existing local and remote key material."""

from pathlib import Path
import threading

from ssh_keyprov.config import Settings, get_settings
from ssh_keyprov.exceptions import CancellationRequested
from ssh_keyprov.logging_config import get_logger
from ssh_keyprov.models import KeyMaterial, SessionInfo
from ssh_keyprov.remote.session import RemoteSession, SessionFactory

logger = get_logger(__name__)


def local_public_key_path(info: SessionInfo | None, settings: Settings) -> Path:
    """Pick the local public key to show.

    Prefers the ``.pub`` sibling of the session's identity file when it exists,
    otherwise the default ``~/.ssh/id_rsa.pub``.
    """
    if info is not None and info.private_key_file:
        identity = Path(info.private_key_file).expanduser()
        candidate = identity.with_name(identity.name + ".pub")
        if candidate.exists():
            return candidate
    return settings.local_public_key_path


def load_local_key(material: KeyMaterial, path: Path) -> None:
    """Read the local public key into ``material``.

    A missing or unreadable file leaves the local fields empty; local key
    material is informational and never fails discovery.
    """
    try:
        text = path.read_bytes().decode("utf-8")
    except FileNotFoundError:
        logger.debug("local_public_key_absent", path=str(path))
        material.set_local(None, None)
        return
    except (OSError, UnicodeDecodeError) as e:
        # Not just "no key yet": surface it, but keep discovery going
        logger.warning(
            "local_public_key_unreadable",
            path=str(path),
            error=str(e),
            error_type=type(e).__name__,
        )
        material.set_local(None, None)
        return

    material.set_local(text, str(path))
    logger.debug("local_public_key_loaded", path=str(path))


def load_remote_keys(material: KeyMaterial, session: RemoteSession) -> None:
    """Read the remote public key (required) and authorized_keys (optional)."""
    pub_path = session.ssh_path("id_rsa.pub")
    data = session.read(pub_path, tolerate_absence=False)
    material.set_remote(data.decode("utf-8", errors="replace"), pub_path)

    auth_path = session.ssh_path("authorized_keys")
    data = session.read(auth_path, tolerate_absence=True)
    material.remote_authorized_keys = (
        data.decode("utf-8", errors="replace") if data is not None else None
    )
    logger.debug(
        "remote_keys_loaded",
        public_key_path=pub_path,
        authorized_keys_present=data is not None,
    )


def discover(
    info: SessionInfo,
    cancel_flag: threading.Event,
    settings: Settings | None = None,
    session_factory: SessionFactory = RemoteSession,
) -> KeyMaterial:
    """Collect the current local and remote key material.

    Raises:
        CancellationRequested: if the flag is already set before connecting.
        RemoteFileNotFound: if the remote ``~/.ssh/id_rsa.pub`` does not exist.
        TransportFailure: on any other remote error.
    """
    settings = settings or get_settings()
    material = KeyMaterial()
    load_local_key(material, local_public_key_path(info, settings))

    if cancel_flag.is_set():
        raise CancellationRequested()

    with session_factory(info) as session:
        load_remote_keys(material, session)

    logger.info(
        "key_discovery_complete",
        host=info.host,
        local_key=material.has_local_key,
        remote_key=material.has_remote_key,
        authorized_keys=material.remote_authorized_keys is not None,
    )
    return material
