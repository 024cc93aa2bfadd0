"""Remote RSA key pair generation via ssh-keygen on the target host."""

import shlex
import threading

from ssh_keyprov.exceptions import CancellationRequested, CommandFailure
from ssh_keyprov.keys.discovery import load_remote_keys
from ssh_keyprov.keys.installer import ensure_ssh_directory
from ssh_keyprov.logging_config import get_logger
from ssh_keyprov.models import KeyMaterial, SessionInfo
from ssh_keyprov.remote.session import RemoteSession, SessionFactory

logger = get_logger(__name__)

_REDACTED = "***"


def build_keygen_command(key_path: str, passphrase: str) -> str:
    """ssh-keygen invocation writing ``key_path`` and ``key_path.pub``."""
    return " ".join(
        [
            "ssh-keygen",
            "-q",
            "-t",
            "rsa",
            "-N",
            shlex.quote(passphrase),
            "-f",
            shlex.quote(key_path),
        ]
    )


def generate_remote(
    info: SessionInfo,
    cancel_flag: threading.Event,
    passphrase: str,
    material: KeyMaterial | None = None,
    session_factory: SessionFactory = RemoteSession,
) -> KeyMaterial:
    """Replace the remote ``~/.ssh/id_rsa`` pair with a freshly generated one.

    ssh-keygen refuses to overwrite an existing pair, so both files are removed
    first (already-missing files are fine).

    Raises:
        CancellationRequested: flag set before connecting or while ssh-keygen runs.
        CommandFailure: ssh-keygen exited unsuccessfully.
        RemoteFileNotFound: the new public key is missing afterwards.
        TransportFailure: any other remote error.
    """
    if cancel_flag.is_set():
        raise CancellationRequested()

    material = material if material is not None else KeyMaterial()

    with session_factory(info) as session:
        key_path = session.ssh_path("id_rsa")
        pub_path = f"{key_path}.pub"

        session.remove(key_path, tolerate_absence=True)
        session.remove(pub_path, tolerate_absence=True)
        ensure_ssh_directory(session)

        command = build_keygen_command(key_path, passphrase)
        shown = build_keygen_command(key_path, _REDACTED) if passphrase else command
        result = session.execute(command, cancel_flag, log_command=shown)

        if result.cancelled or (not result.success and cancel_flag.is_set()):
            raise CancellationRequested("Remote key generation cancelled")
        if not result.success:
            logger.error(
                "remote_key_generation_failed",
                host=info.host,
                exit_status=result.exit_status,
                output=result.output,
            )
            raise CommandFailure(shown, result.output, result.exit_status)

        load_remote_keys(material, session)

    if not (material.remote_public_key or "").strip():
        raise CommandFailure(shown, "generated public key is empty", result.exit_status)

    logger.info("remote_key_generated", host=info.host, path=material.remote_public_key_path)
    return material
