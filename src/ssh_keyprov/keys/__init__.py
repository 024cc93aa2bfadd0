from .discovery import discover, load_local_key, load_remote_keys, local_public_key_path
from .installer import ensure_ssh_directory, install, merge_authorized_keys
from .local import generate_local, local_key_comment
from .remote import build_keygen_command, generate_remote

__all__ = [
    "build_keygen_command",
    "discover",
    "ensure_ssh_directory",
    "generate_local",
    "generate_remote",
    "install",
    "load_local_key",
    "load_remote_keys",
    "local_key_comment",
    "local_public_key_path",
    "merge_authorized_keys",
]
