"""Provision SSH key pairs locally or on a remote host and install authorized_keys."""

from ssh_keyprov.config import Settings
from ssh_keyprov.exceptions import (
    CancellationRequested,
    CommandFailure,
    KeyProvisioningError,
    LocalIOFailure,
    RemoteFileNotFound,
    TransportFailure,
)
from ssh_keyprov.models import KeyMaterial, SessionInfo
from ssh_keyprov.provisioner import ConfirmationGate, KeyProvisioner

__all__ = [
    "CancellationRequested",
    "CommandFailure",
    "ConfirmationGate",
    "KeyMaterial",
    "KeyProvisioner",
    "KeyProvisioningError",
    "LocalIOFailure",
    "RemoteFileNotFound",
    "SessionInfo",
    "Settings",
    "TransportFailure",
]
