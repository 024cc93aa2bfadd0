"""Installing the remote authorized_keys file."""

from ssh_keyprov.exceptions import KeyProvisioningError
from ssh_keyprov.logging_config import get_logger
from ssh_keyprov.models import SessionInfo
from ssh_keyprov.remote.session import RemoteSession, SessionFactory

logger = get_logger(__name__)


def ensure_ssh_directory(session: RemoteSession) -> str:
    """Create the remote ``~/.ssh`` directory unless it is listed in the home directory.

    A failed listing counts as "not found", so creation is attempted anyway.
    """
    home = session.get_home()
    ssh_dir = session.ssh_path()
    try:
        found = ".ssh" in session.list_entries(home)
    except KeyProvisioningError as e:
        logger.warning("remote_home_listing_failed", path=home, error=str(e))
        found = False

    if not found:
        logger.info("remote_ssh_dir_create", path=ssh_dir)
        session.make_directory(ssh_dir, mode=0o700)
    return ssh_dir


def install(
    authorized_keys: str,
    info: SessionInfo,
    session_factory: SessionFactory = RemoteSession,
) -> None:
    """Overwrite the remote ``~/.ssh/authorized_keys`` with ``authorized_keys``.

    Existing content is replaced, not merged; use ``merge_authorized_keys``
    first for append semantics.
    """
    with session_factory(info) as session:
        ensure_ssh_directory(session)
        path = session.ssh_path("authorized_keys")
        session.write(path, authorized_keys.encode("utf-8"))

    logger.info(
        "authorized_keys_installed",
        host=info.host,
        path=path,
        entries=sum(1 for line in authorized_keys.splitlines() if line.strip()),
    )


def merge_authorized_keys(existing: str | None, public_key: str) -> str:
    """Append ``public_key`` to ``existing`` authorized_keys content unless already present.

    Keys are compared on their type and base64 blob, ignoring comments.
    """
    existing = existing or ""
    new_line = public_key.strip()
    if not new_line:
        return existing

    wanted = _key_identity(new_line)
    for line in existing.splitlines():
        if _key_identity(line) == wanted:
            return existing

    if existing and not existing.endswith("\n"):
        existing += "\n"
    return f"{existing}{new_line}\n"


def _key_identity(line: str) -> tuple[str, ...] | None:
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    parts = line.split()
    # Options prefix (e.g. 'from="..." ssh-rsa AAAA...'): find the key type token
    for i, part in enumerate(parts[:-1]):
        if part.startswith(("ssh-", "ecdsa-", "sk-")):
            return (part, parts[i + 1])
    return tuple(parts[:2])
