"""Local RSA key pair generation."""

import getpass

import paramiko

from ssh_keyprov.config import Settings, get_settings
from ssh_keyprov.exceptions import LocalIOFailure
from ssh_keyprov.keys.discovery import load_local_key
from ssh_keyprov.logging_config import get_logger
from ssh_keyprov.models import KeyMaterial

logger = get_logger(__name__)


def local_key_comment(settings: Settings) -> str:
    return f"{getpass.getuser()}@{settings.local_key_comment_host}"


def generate_local(
    passphrase: str,
    settings: Settings | None = None,
    material: KeyMaterial | None = None,
) -> KeyMaterial:
    """Generate a new local ``id_rsa`` pair, replacing any existing one.

    The private key is encrypted when ``passphrase`` is non-empty. Whether an
    existing key may be overwritten is decided by the caller.

    Args:
        passphrase: Private key passphrase; empty string for none.
        settings: Settings with the local key directory and key size.
        material: Key material to update in place; a new one is created if omitted.

    Returns:
        The material with local fields re-read from the written public key.
    """
    settings = settings or get_settings()
    material = material if material is not None else KeyMaterial()
    ssh_dir = settings.local_ssh_dir
    private_path = settings.local_private_key_path
    public_path = settings.local_public_key_path

    try:
        ssh_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise LocalIOFailure(str(ssh_dir), str(e)) from e

    logger.info("local_key_generation_start", path=str(private_path), bits=settings.rsa_key_bits)
    key = paramiko.RSAKey.generate(bits=settings.rsa_key_bits)
    comment = local_key_comment(settings)
    try:
        key.write_private_key_file(str(private_path), password=passphrase or None)
        public_path.write_text(
            f"{key.get_name()} {key.get_base64()} {comment}\n",
            encoding="utf-8",
        )
    except OSError as e:
        logger.error("local_key_write_failed", path=str(private_path), error=str(e))
        raise LocalIOFailure(str(private_path), str(e)) from e

    logger.info(
        "local_key_generated",
        path=str(private_path),
        encrypted=bool(passphrase),
        comment=comment,
    )
    load_local_key(material, public_path)
    if not material.has_local_key:
        raise LocalIOFailure(str(public_path), "generated public key could not be read back")
    return material
